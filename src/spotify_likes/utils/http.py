"""httpx helpers: client construction and error-body parsing."""

from __future__ import annotations

import json
import math
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx

from ..config import Settings


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Build the shared client used for one CLI run."""

    timeout = httpx.Timeout(settings.request_timeout, connect=10.0)
    limits = httpx.Limits(
        max_connections=max(10, settings.liked_songs_concurrency * 2),
        max_keepalive_connections=settings.liked_songs_concurrency,
    )
    return httpx.AsyncClient(timeout=timeout, limits=limits)


@asynccontextmanager
async def http_client_scope(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield ``client`` untouched, or a fresh client that is closed afterwards."""

    if client is not None:
        yield client
        return
    async with create_http_client(settings) as owned:
        yield owned


def extract_error_detail(raw: bytes) -> Any:
    """Pull a human-readable message out of a Spotify error response body.

    The accounts service answers with ``{"error": ..., "error_description": ...}``
    while the Web API nests it as ``{"error": {"status": ..., "message": ...}}``.
    """

    if not raw:
        return "Spotify returned an empty error response."
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        text = raw.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if not isinstance(payload, dict):
        return payload
    if payload.get("error_description"):
        return payload["error_description"]
    error = payload.get("error")
    if isinstance(error, dict):
        return error.get("message") or error
    return error or payload


def parse_retry_after(value: Optional[str], default: float) -> float:
    """Seconds to wait from a ``retry-after`` header, or ``default``."""

    if value is None:
        return default
    try:
        seconds = float(value.strip())
    except ValueError:
        return default
    if not math.isfinite(seconds) or seconds < 0:
        return default
    return seconds


__all__ = [
    "create_http_client",
    "extract_error_detail",
    "http_client_scope",
    "parse_retry_after",
]
