"""Logging helpers shared across the engine.

Provides a single place to configure the root logger, build structured
``extra=`` payloads and keep credentials out of logged URLs.
"""
from __future__ import annotations

import logging
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

# LogRecord refuses extra keys that shadow its own attributes
_RESERVED = frozenset(("name", "msg", "args", "message", "module", "filename", "levelname"))


def configure_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> None:
    """Configure the root logger with the project format.

    Args:
        level: Level name such as ``"INFO"``; defaults to INFO.
        logfile: Optional file to log to instead of stderr.
    """
    level_value = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    if logfile:
        handler: logging.Handler = logging.FileHandler(logfile, encoding=Constants.FILE_ENCODING)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    None values are dropped and reserved record attribute names are
    prefixed with ``ctx_``.
    """
    return {
        (f"ctx_{k}" if k in _RESERVED else k): v
        for k, v in kwargs.items()
        if v is not None
    }


def safe_url(url: str) -> str:
    """Strip user info and query string from a URL before logging it."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds; measured up to now while still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
