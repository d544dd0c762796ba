"""Exception hierarchy shared by the auth flow, fetch engine and CLI."""

from __future__ import annotations

from typing import Any, Optional


class SpotifyLikesError(Exception):
    """Base error carrying an HTTP-ish status code and upstream detail."""

    def __init__(self, detail: Any, status_code: Optional[int] = None):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail


class ConfigurationError(SpotifyLikesError):
    """Required settings are missing; raised before any network activity."""


class AuthError(SpotifyLikesError):
    """Token endpoint rejected us or the callback listener could not start."""


class MissingCodeError(AuthError):
    """The authorization redirect arrived without a ``code`` parameter."""


class TokenExchangeError(AuthError):
    """Exchanging the authorization code for an access token failed."""


class FetchError(SpotifyLikesError):
    """A Web API request that the caller cannot recover from failed."""


class PageFetchError(FetchError):
    """A single library page failed; the engine records it and moves on."""

    def __init__(self, offset: int, detail: Any, status_code: Optional[int] = None):
        super().__init__(detail, status_code)
        self.offset = offset


class ThrottleError(SpotifyLikesError):
    """HTTP 429 from the Web API."""

    def __init__(self, retry_after: float, detail: Any = "Rate limited"):
        super().__init__(detail, 429)
        self.retry_after = retry_after


__all__ = [
    "AuthError",
    "ConfigurationError",
    "FetchError",
    "MissingCodeError",
    "PageFetchError",
    "SpotifyLikesError",
    "ThrottleError",
    "TokenExchangeError",
]
