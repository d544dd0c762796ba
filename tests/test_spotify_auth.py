"""Tests for the client-credentials grant and the code exchange."""

from __future__ import annotations

import base64
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from spotify_likes.errors import AuthError, ConfigurationError, TokenExchangeError
from spotify_likes.services.spotify_auth.auth import (
    acquire_app_token,
    build_authorize_url,
    exchange_code,
)


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def test_build_authorize_url(make_settings) -> None:
    url = build_authorize_url(make_settings())
    parsed = urlparse(url)
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}

    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
        "https://accounts.example.com/authorize"
    )
    assert query == {
        "response_type": "code",
        "client_id": "client-id",
        "scope": "user-library-read",
        "redirect_uri": "http://127.0.0.1:8888/callback",
    }


@pytest.mark.asyncio
async def test_acquire_app_token_uses_basic_auth(make_settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"access_token": "app-token", "token_type": "Bearer", "expires_in": 3600}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        credential = await acquire_app_token(make_settings(), client)

    assert credential.access_token == "app-token"
    assert credential.scope is None
    assert credential.expires_in == 3600
    assert "app-token" not in repr(credential)

    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == "https://accounts.example.com/api/token"
    assert _form(request) == {"grant_type": "client_credentials"}
    expected = base64.b64encode(b"client-id:client-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


@pytest.mark.asyncio
async def test_acquire_app_token_requires_credentials(make_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ConfigurationError):
            await acquire_app_token(make_settings(spotify_client_secret=None), client)


@pytest.mark.asyncio
async def test_acquire_app_token_rejected(make_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": "invalid_client", "error_description": "Invalid client"},
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AuthError) as excinfo:
            await acquire_app_token(make_settings(), client)

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "Invalid client"


@pytest.mark.asyncio
async def test_acquire_app_token_transport_error(make_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AuthError) as excinfo:
            await acquire_app_token(make_settings(), client)

    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_acquire_app_token_without_access_token(make_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"token_type": "Bearer"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AuthError, match="Malformed"):
            await acquire_app_token(make_settings(), client)


@pytest.mark.asyncio
async def test_exchange_code_posts_form(make_settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"access_token": "user-token", "scope": "user-library-read"}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        credential = await exchange_code(make_settings(), client, "the-code")

    assert credential.access_token == "user-token"
    assert credential.scope == "user-library-read"
    assert _form(seen[0]) == {
        "grant_type": "authorization_code",
        "code": "the-code",
        "redirect_uri": "http://127.0.0.1:8888/callback",
        "client_id": "client-id",
        "client_secret": "client-secret",
    }


@pytest.mark.asyncio
async def test_exchange_code_rejected_carries_upstream_detail(make_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Invalid authorization code"},
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(TokenExchangeError) as excinfo:
            await exchange_code(make_settings(), client, "bad-code")

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "Invalid authorization code"
