"""Spotify token acquisition.

Two grants are supported:

* client credentials, an app-level token used by artist search;
* authorization code, the user-level token behind the liked-songs export.
  The browser/redirect half of that flow lives in ``callback.py``; this
  module only builds the consent URL and performs the code exchange.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from spotify_likes.config import Settings
from spotify_likes.errors import AuthError, TokenExchangeError
from spotify_likes.schemas.spotify import Credential, TokenResponse
from spotify_likes.utils.http import extract_error_detail

logger = logging.getLogger(__name__)

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def token_url(settings: Settings) -> str:
    return f"{settings.accounts_base_url}/api/token"


def build_authorize_url(settings: Settings) -> str:
    """Generate the consent page URL for the authorization-code grant."""

    query = urlencode(
        {
            "response_type": "code",
            "client_id": settings.spotify_client_id or "",
            "scope": settings.spotify_scopes,
            "redirect_uri": settings.spotify_redirect_uri or "",
        }
    )
    return f"{settings.accounts_base_url}/authorize?{query}"


async def acquire_app_token(
    settings: Settings, client: httpx.AsyncClient
) -> Credential:
    """Request an app-level token with the client-credentials grant.

    A single attempt is made; there is no retry.

    Raises:
        ConfigurationError: If the client id or secret is missing.
        AuthError: If the token endpoint is unreachable or rejects the request.
    """

    settings.require_client_credentials()

    try:
        response = await client.post(
            token_url(settings),
            data={"grant_type": "client_credentials"},
            headers=FORM_HEADERS,
            auth=(settings.spotify_client_id or "", settings.client_secret_value()),
        )
    except httpx.HTTPError as exc:
        raise AuthError(f"Token endpoint unreachable: {exc}", 502) from exc

    if response.status_code >= 400:
        detail = extract_error_detail(response.content)
        logger.error("Client-credentials grant rejected (%s): %s", response.status_code, detail)
        raise AuthError(detail, response.status_code)

    try:
        token = TokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise AuthError(f"Malformed token response: {exc}", 502) from exc

    return token.to_credential()


async def exchange_code(
    settings: Settings, client: httpx.AsyncClient, code: str
) -> Credential:
    """Exchange an authorization code for a user access token.

    Raises:
        TokenExchangeError: With the upstream status and error detail when the
            exchange fails for any reason.
    """

    payload = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.spotify_redirect_uri or "",
        "client_id": settings.spotify_client_id or "",
        "client_secret": settings.client_secret_value(),
    }

    try:
        response = await client.post(
            token_url(settings), data=payload, headers=FORM_HEADERS
        )
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Token endpoint unreachable: {exc}", 502) from exc

    if response.status_code >= 400:
        detail = extract_error_detail(response.content)
        raise TokenExchangeError(detail, response.status_code)

    try:
        token = TokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise TokenExchangeError(f"Malformed token response: {exc}", 502) from exc

    return token.to_credential()


__all__ = [
    "acquire_app_token",
    "build_authorize_url",
    "exchange_code",
    "token_url",
]
