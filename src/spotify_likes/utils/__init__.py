"""Utility helpers shared by the Spotify services."""

from .http import (
    create_http_client,
    extract_error_detail,
    http_client_scope,
    parse_retry_after,
)

__all__ = [
    "create_http_client",
    "extract_error_detail",
    "http_client_scope",
    "parse_retry_after",
]
