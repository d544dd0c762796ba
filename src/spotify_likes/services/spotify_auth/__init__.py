"""Spotify authentication service."""

from spotify_likes.services.spotify_auth.auth import (
    acquire_app_token,
    build_authorize_url,
    exchange_code,
)
from spotify_likes.services.spotify_auth.callback import (
    AuthorizationFlow,
    AuthorizationRequest,
    AuthorizationState,
)

__all__ = [
    "AuthorizationFlow",
    "AuthorizationRequest",
    "AuthorizationState",
    "acquire_app_token",
    "build_authorize_url",
    "exchange_code",
]
