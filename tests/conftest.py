import pathlib
import socket
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from spotify_likes.config import Settings  # noqa: E402

SPOTIFY_ENV_VARS = (
    "SPOTIFY_CLIENT_ID",
    "SPOTIFY_CLIENT_SECRET",
    "SPOTIFY_REDIRECT_URI",
    "SPOTIFY_ACCOUNTS_URL",
    "SPOTIFY_API_URL",
    "SPOTIFY_AUTH_TIMEOUT",
    "SPOTIFY_SCOPES",
    "SPOTIFY_CALLBACK_HOST",
    "SPOTIFY_TIMEOUT",
    "LIKED_SONGS_PAGE_SIZE",
    "LIKED_SONGS_CONCURRENCY",
    "LIKED_SONGS_OUTPUT_PATH",
    "MAX_THROTTLE_RETRIES",
    "DEFAULT_RETRY_AFTER",
)


@pytest.fixture(autouse=True)
def clean_spotify_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's real credentials out of the tests."""
    for name in SPOTIFY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "spotify_client_id": "client-id",
            "spotify_client_secret": "client-secret",
            "spotify_redirect_uri": "http://127.0.0.1:8888/callback",
            "spotify_accounts_url": "https://accounts.example.com",
            "spotify_api_url": "https://api.example.com/v1",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)  # pyright: ignore[reportCallIssue]

    return _make


@pytest.fixture
def callback_port() -> int:
    return free_port()
