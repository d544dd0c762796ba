"""Tests for settings loading and pre-flight checks."""

from pathlib import Path

import pytest

from spotify_likes.config import DEFAULT_CALLBACK_PORT, Settings
from spotify_likes.errors import ConfigurationError


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "env-id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("SPOTIFY_REDIRECT_URI", "http://localhost:9999/cb")
    monkeypatch.setenv("LIKED_SONGS_CONCURRENCY", "3")

    settings = Settings(_env_file=None)  # pyright: ignore[reportCallIssue]

    assert settings.spotify_client_id == "env-id"
    assert settings.client_secret_value() == "env-secret"
    assert settings.liked_songs_concurrency == 3
    assert settings.callback_port == 9999
    assert settings.callback_path == "/cb"


def test_defaults() -> None:
    settings = Settings(_env_file=None)  # pyright: ignore[reportCallIssue]

    assert settings.spotify_client_id is None
    assert settings.liked_songs_page_size == 50
    assert settings.liked_songs_concurrency == 5
    assert settings.max_throttle_retries is None
    assert settings.default_retry_after == 1.0
    assert settings.api_base_url == "https://api.spotify.com/v1"
    assert settings.accounts_base_url == "https://accounts.spotify.com"
    assert settings.liked_songs_output_path == Path("tmp/liked_songs.json")
    assert settings.callback_port == DEFAULT_CALLBACK_PORT


def test_secret_is_not_exposed_in_repr(make_settings) -> None:
    settings = make_settings()
    assert "client-secret" not in repr(settings)


def test_redirect_uri_without_port_uses_default(make_settings) -> None:
    settings = make_settings(spotify_redirect_uri="http://localhost/callback")
    assert settings.callback_port == DEFAULT_CALLBACK_PORT
    assert settings.callback_path == "/callback"


@pytest.mark.parametrize(
    ("overrides", "missing"),
    [
        ({"spotify_client_id": None}, "SPOTIFY_CLIENT_ID"),
        ({"spotify_client_secret": None}, "SPOTIFY_CLIENT_SECRET"),
        ({"spotify_client_secret": ""}, "SPOTIFY_CLIENT_SECRET"),
    ],
)
def test_require_client_credentials(make_settings, overrides, missing) -> None:
    settings = make_settings(**overrides)
    with pytest.raises(ConfigurationError, match=missing):
        settings.require_client_credentials()


def test_require_user_auth_needs_redirect_uri(make_settings) -> None:
    settings = make_settings(spotify_redirect_uri=None)
    settings.require_client_credentials()
    with pytest.raises(ConfigurationError, match="SPOTIFY_REDIRECT_URI"):
        settings.require_user_auth()


def test_page_size_is_capped_at_api_maximum(make_settings) -> None:
    with pytest.raises(ValueError):
        make_settings(liked_songs_page_size=51)
