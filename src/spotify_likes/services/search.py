"""Artist search with an app-level token."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from spotify_likes.config import Settings
from spotify_likes.errors import FetchError
from spotify_likes.schemas.spotify import ArtistRecord, Credential
from spotify_likes.services.spotify_auth.auth import acquire_app_token
from spotify_likes.utils.http import extract_error_detail, http_client_scope

logger = logging.getLogger(__name__)


async def search_artist(
    settings: Settings,
    client: httpx.AsyncClient,
    name: str,
    credential: Credential,
) -> Optional[ArtistRecord]:
    """Return the first artist matching ``name``, or ``None``."""

    try:
        response = await client.get(
            f"{settings.api_base_url}/search",
            headers=credential.authorization_header,
            params={"q": name, "type": "artist"},
        )
    except httpx.HTTPError as exc:
        raise FetchError(f"Artist search failed: {exc}", 502) from exc

    if response.status_code >= 400:
        raise FetchError(extract_error_detail(response.content), response.status_code)

    try:
        body = response.json()
    except ValueError as exc:
        raise FetchError(f"Malformed search response: {exc}", 502) from exc
    if not isinstance(body, dict):
        raise FetchError("Malformed search response: expected an object", 502)

    items = (body.get("artists") or {}).get("items") or []
    if not items:
        logger.info("No artist found for %r", name)
        return None
    return items[0]


async def find_artist(
    settings: Settings,
    name: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[ArtistRecord]:
    """Acquire an app token and look up ``name``."""

    settings.require_client_credentials()
    async with http_client_scope(settings, client) as http:
        credential = await acquire_app_token(settings, http)
        return await search_artist(settings, http, name, credential)


__all__ = ["find_artist", "search_artist"]
