"""Application configuration using environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_CALLBACK_PORT = 8888


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`.

    Constructed once by the CLI and handed to every component that needs it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Spotify application credentials
    spotify_client_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SPOTIFY_CLIENT_ID", "spotify_client_id"),
    )
    spotify_client_secret: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices(
            "SPOTIFY_CLIENT_SECRET", "spotify_client_secret"
        ),
    )
    spotify_redirect_uri: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SPOTIFY_REDIRECT_URI", "spotify_redirect_uri"),
    )

    spotify_accounts_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://accounts.spotify.com"),
        validation_alias=AliasChoices("SPOTIFY_ACCOUNTS_URL", "spotify_accounts_url"),
    )
    spotify_api_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.spotify.com/v1"),
        validation_alias=AliasChoices("SPOTIFY_API_URL", "spotify_api_url"),
    )
    spotify_scopes: str = Field(
        default="user-library-read",
        validation_alias=AliasChoices("SPOTIFY_SCOPES", "spotify_scopes"),
    )

    # Local redirect listener
    spotify_callback_host: str = Field(
        default="127.0.0.1",
        validation_alias=AliasChoices(
            "SPOTIFY_CALLBACK_HOST", "spotify_callback_host"
        ),
    )
    spotify_auth_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("SPOTIFY_AUTH_TIMEOUT", "spotify_auth_timeout"),
    )

    # Liked-songs fetch engine
    liked_songs_page_size: int = Field(
        default=50,
        ge=1,
        le=50,
        validation_alias=AliasChoices(
            "LIKED_SONGS_PAGE_SIZE", "liked_songs_page_size"
        ),
    )
    liked_songs_concurrency: int = Field(
        default=5,
        ge=1,
        validation_alias=AliasChoices(
            "LIKED_SONGS_CONCURRENCY", "liked_songs_concurrency"
        ),
    )
    default_retry_after: float = Field(
        default=1.0,
        ge=0,
        validation_alias=AliasChoices("DEFAULT_RETRY_AFTER", "default_retry_after"),
    )
    # Unset means retry throttled requests forever.
    max_throttle_retries: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("MAX_THROTTLE_RETRIES", "max_throttle_retries"),
    )
    request_timeout: float = Field(
        default=30.0,
        ge=1,
        validation_alias=AliasChoices("SPOTIFY_TIMEOUT", "request_timeout"),
    )
    liked_songs_output_path: Path = Field(
        default_factory=lambda: Path("tmp/liked_songs.json"),
        validation_alias=AliasChoices(
            "LIKED_SONGS_OUTPUT_PATH", "liked_songs_output_path"
        ),
    )

    @property
    def accounts_base_url(self) -> str:
        return str(self.spotify_accounts_url).rstrip("/")

    @property
    def api_base_url(self) -> str:
        return str(self.spotify_api_url).rstrip("/")

    @property
    def callback_port(self) -> int:
        """Port of the redirect URI, which the local listener must bind."""

        parsed = urlparse(self.spotify_redirect_uri or "")
        return parsed.port or DEFAULT_CALLBACK_PORT

    @property
    def callback_path(self) -> str:
        parsed = urlparse(self.spotify_redirect_uri or "")
        return parsed.path or "/"

    def client_secret_value(self) -> str:
        if self.spotify_client_secret is None:
            return ""
        return self.spotify_client_secret.get_secret_value()

    def require_client_credentials(self) -> None:
        """Raise `ConfigurationError` unless the app id and secret are set."""

        missing = []
        if not self.spotify_client_id:
            missing.append("SPOTIFY_CLIENT_ID")
        if not self.client_secret_value():
            missing.append("SPOTIFY_CLIENT_SECRET")
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )

    def require_user_auth(self) -> None:
        """Like `require_client_credentials`, but the redirect URI is needed too."""

        missing = []
        if not self.spotify_client_id:
            missing.append("SPOTIFY_CLIENT_ID")
        if not self.client_secret_value():
            missing.append("SPOTIFY_CLIENT_SECRET")
        if not self.spotify_redirect_uri:
            missing.append("SPOTIFY_REDIRECT_URI")
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )


__all__ = ["DEFAULT_CALLBACK_PORT", "Settings"]
