"""Thread-safe in-process TTL cache for version metadata."""
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional, Tuple

from constants import Constants


class TTLCache:
    """Small key/value cache whose entries expire after a TTL."""

    def __init__(self, default_ttl: int = Constants.METADATA_CACHE_TTL_SEC):
        self._default_ttl = default_ttl
        self._data: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.time() > expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        effective_ttl = ttl if ttl is not None else self._default_ttl
        with self._lock:
            self._data[key] = (value, time.time() + effective_ttl)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
