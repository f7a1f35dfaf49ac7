"""Shared HTTP helpers used by the catalog, warnings feed and artifact cache.

Encapsulates timeout, retry and caching behaviour so the registry modules
avoid duplicating try/except blocks. Text fetches return a status tuple;
binary downloads stream to a temporary file that is only renamed into place
once complete, so an interrupted download never looks like a cached one.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import requests

from constants import Constants
from common.errors import DownloadError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


@dataclass
class FetchSettings:
    """Network tuning shared by every request of one invocation.

    ``retries`` counts additional attempts after the first one; the whole
    retry sequence stops once ``retry_max_time`` seconds have elapsed
    (0 disables the budget).
    """

    connect_timeout: float = Constants.CONNECT_TIMEOUT
    read_timeout: float = Constants.REQUEST_TIMEOUT
    retries: int = Constants.HTTP_RETRY_MAX
    retry_delay: float = Constants.HTTP_RETRY_DELAY_SEC
    retry_max_time: float = Constants.HTTP_RETRY_MAX_TIME_SEC

    @property
    def timeout(self) -> Tuple[float, float]:
        """(connect, read) tuple as accepted by requests."""
        return self.connect_timeout, self.read_timeout


DEFAULT_SETTINGS = FetchSettings()


def _attempts(settings: FetchSettings) -> Iterator[int]:
    """Yield 1-based attempt numbers, sleeping between them, within the retry budget."""
    started = time.monotonic()
    for index in range(max(settings.retries, 0) + 1):
        if index:
            if settings.retry_max_time and (
                time.monotonic() - started + settings.retry_delay > settings.retry_max_time
            ):
                return
            if settings.retry_delay > 0:
                time.sleep(settings.retry_delay)
        yield index + 1


# Simple in-memory cache for HTTP responses
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
    settings: Optional[FetchSettings] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout, retries, and caching with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, text). A status of 0 means every
        attempt failed at the transport level; the text then describes the
        last failure.
    """
    settings = settings or DEFAULT_SETTINGS
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
    last_response: Optional[Tuple[int, Dict[str, str], str]] = None

    for attempt in _attempts(settings):
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt
                        )
                    )

                response = requests.get(
                    url,
                    timeout=settings.timeout,
                    headers=headers,
                    **kwargs
                )
            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt,
                            target=safe_target
                        )
                    )
                continue

        last_response = (response.status_code, dict(response.headers), response.text)
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if response.status_code < 400 else "error_status",
                    status_code=response.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target
                )
            )
        if response.status_code >= 500:  # Retry and never cache server errors
            continue
        with _http_cache_lock:
            _http_cache[cache_key] = (last_response, time.time())
        return last_response

    if last_response is not None:
        return last_response
    return 0, {}, f"Request failed after {settings.retries + 1} attempts: {last_exception}"


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def _stream_once(url: str, tmp_path: str, settings: FetchSettings) -> int:
    """Stream one response body into ``tmp_path``; return the HTTP status."""
    with requests.get(url, stream=True, timeout=settings.timeout) as response:
        if response.status_code != 200:
            return response.status_code
        with open(tmp_path, "wb") as fh:
            for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
        return response.status_code


def download_file(url: str, dest: Path, *, settings: Optional[FetchSettings] = None) -> Path:
    """Download ``url`` to ``dest`` with retries, renaming into place on success.

    Args:
        url: Source URL.
        dest: Final file path; its directory is created if missing.
        settings: Timeout and retry tuning.

    Returns:
        Path: ``dest``.

    Raises:
        DownloadError: When every attempt failed or the server answered 4xx.
    """
    settings = settings or DEFAULT_SETTINGS
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    safe_target = safe_url(url)
    last_error: Optional[str] = None

    for attempt in _attempts(settings):
        fd, tmp_path = tempfile.mkstemp(dir=str(dest.parent), prefix=f".{dest.name}.", suffix=".part")
        os.close(fd)
        with Timer() as t:
            try:
                status = _stream_once(url, tmp_path, settings)
            except requests.RequestException as exc:
                _discard(tmp_path)
                last_error = str(exc) or exc.__class__.__name__
                logger.debug(
                    "Download attempt failed",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="download",
                        outcome="request_exception",
                        attempt=attempt,
                        target=safe_target
                    )
                )
                continue
            except BaseException:
                _discard(tmp_path)
                raise

        if status == 200:
            os.replace(tmp_path, dest)
            if is_debug_enabled(logger):
                logger.debug(
                    "Download complete",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="download",
                        outcome="success",
                        status_code=status,
                        duration_ms=t.duration_ms(),
                        target=safe_target
                    )
                )
            return dest

        _discard(tmp_path)
        last_error = f"HTTP {status}"
        if status < 500:
            break

    raise DownloadError(url, last_error)
