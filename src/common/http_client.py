"""Shared HTTP helpers used by the registry clients.

Encapsulates request/timeout error handling so callers deal with status
codes instead of transport exceptions. A status code of ``0`` means the
request never produced a response (timeout or connection failure).
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, BinaryIO, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


# Simple in-memory cache for text responses
_http_cache: Dict[str, Tuple[Any, float]] = {}
_http_cache_lock = threading.Lock()


def _get_cache_key(method: str, url: str, headers: Optional[Dict[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def _is_cache_valid(cache_entry: Tuple[Any, float]) -> bool:
    """Check if cache entry is still valid."""
    _, cached_time = cache_entry
    return time.time() - cached_time < Constants.HTTP_CACHE_TTL_SEC


def clear_cache() -> None:
    """Drop every cached response."""
    with _http_cache_lock:
        _http_cache.clear()


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout, bounded attempts and caching.

    Returns:
        Tuple of (status_code, headers_dict, text). On transport failure the
        status is 0 and the text describes the last error.
    """
    cache_key = _get_cache_key('GET', url, headers)
    safe_target = safe_url(url)

    with _http_cache_lock:
        cached = _http_cache.get(cache_key)
    if cached is not None and _is_cache_valid(cached):
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="http_client",
                    action="GET",
                    target=safe_target
                )
            )
        return cached[0]

    last_exception = None

    for attempt in range(max(1, Constants.HTTP_RETRY_MAX)):
        with Timer() as t:
            try:
                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )
            except requests.Timeout:
                last_exception = "timeout"
                logger.debug(
                    "HTTP timeout",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="GET",
                        outcome="timeout",
                        attempt=attempt + 1,
                        target=safe_target
                    )
                )
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
                logger.debug(
                    "HTTP request exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="GET",
                        outcome="request_exception",
                        attempt=attempt + 1,
                        target=safe_target
                    )
                )
                continue

        result = (response.status_code, dict(response.headers), response.text)
        if response.status_code < 500:  # Don't cache server errors
            with _http_cache_lock:
                _http_cache[cache_key] = (result, time.time())

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=response.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target
                )
            )
        return result

    return 0, {}, f"Request failed after {max(1, Constants.HTTP_RETRY_MAX)} attempts: {last_exception}"


def stream_download(url: str, sink: BinaryIO) -> Tuple[int, Optional[str]]:
    """Stream the body of ``url`` into ``sink``.

    Only a 200 response body is written.

    Returns:
        Tuple of (status_code, error). ``error`` is set when the transfer
        failed before or during the body; status is 0 when no response
        arrived at all.
    """
    safe_target = safe_url(url)
    with Timer() as t:
        try:
            with requests.get(url, timeout=Constants.REQUEST_TIMEOUT, stream=True) as response:
                if response.status_code != 200:
                    return response.status_code, None
                for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        sink.write(chunk)
        except requests.Timeout:
            logger.warning("Download from %s timed out after %s seconds", safe_target, Constants.REQUEST_TIMEOUT)
            return 0, "timeout"
        except requests.RequestException as exc:
            logger.warning("Download from %s failed: %s", safe_target, exc)
            return 0, str(exc)

    if is_debug_enabled(logger):
        logger.debug(
            "HTTP download complete",
            extra=extra_context(
                event="http_download",
                component="http_client",
                action="GET",
                outcome="success",
                duration_ms=t.duration_ms(),
                target=safe_target
            )
        )
    return 200, None
