"""Interactive authorization-code flow with a one-shot local listener.

The browser is sent to the Spotify consent page with a redirect URI pointing
at a listener on this machine. The first redirect that reaches the listener
decides the outcome: its code is exchanged for a user token (or the missing
code is reported), and the listener is shut down whatever happened.

State machine::

    IDLE -> LISTENING -> CODE_RECEIVED -> EXCHANGING -> EXCHANGE_SUCCEEDED
                      |                             -> EXCHANGE_FAILED
                      -> NO_CODE_RECEIVED
    (every branch) -> CLOSED

Note: the listener binds the port of ``SPOTIFY_REDIRECT_URI`` (8888 when the
URI has none). That redirect URI must also be registered for the Spotify app.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import webbrowser
from contextlib import asynccontextmanager
from enum import Enum
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx
import uvicorn

from spotify_likes.config import Settings
from spotify_likes.errors import (
    AuthError,
    MissingCodeError,
    TokenExchangeError,
)
from spotify_likes.routers.spotify_auth import create_callback_app
from spotify_likes.schemas.spotify import Credential
from spotify_likes.services.spotify_auth.auth import (
    build_authorize_url,
    exchange_code,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Authentication successful! You can close this window."
MISSING_CODE_MESSAGE = "No authorization code found"
EXCHANGE_FAILED_MESSAGE = "Error obtaining access token"
ALREADY_HANDLED_MESSAGE = "Authorization already handled"


class AuthorizationState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    CODE_RECEIVED = "code_received"
    EXCHANGING = "exchanging"
    EXCHANGE_SUCCEEDED = "exchange_succeeded"
    EXCHANGE_FAILED = "exchange_failed"
    NO_CODE_RECEIVED = "no_code_received"
    CLOSED = "closed"


class AuthorizationRequest:
    """One pending browser login and its single-resolution outcome."""

    def __init__(self, exchange: Callable[[str], Awaitable[Credential]]):
        self._exchange = exchange
        self._future: asyncio.Future[Credential] = (
            asyncio.get_running_loop().create_future()
        )
        self.state = AuthorizationState.IDLE

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def mark_listening(self) -> None:
        if self.state is AuthorizationState.IDLE:
            self.state = AuthorizationState.LISTENING

    def close(self) -> None:
        # Nobody is waiting any more once the listener is torn down.
        self.state = AuthorizationState.CLOSED
        if not self._future.done():
            self._future.cancel()

    def fail(self, exc: BaseException) -> None:
        """Fail the pending outcome; ignored once it has been resolved."""

        if not self._future.done():
            self._future.set_exception(exc)

    def _succeed(self, credential: Credential) -> None:
        if not self._future.done():
            self._future.set_result(credential)

    async def wait(self) -> Credential:
        return await self._future

    async def handle_redirect(
        self, *, code: Optional[str], error: Optional[str] = None
    ) -> tuple[int, str]:
        """Resolve the authorization from one redirect.

        Returns the status code and plain-text body for the browser. Only the
        first redirect while listening is processed; anything later gets 409.
        """

        if self.state is not AuthorizationState.LISTENING:
            logger.warning("Ignoring redirect received in state %s", self.state.value)
            return 409, ALREADY_HANDLED_MESSAGE

        if not code:
            self.state = AuthorizationState.NO_CODE_RECEIVED
            detail = MISSING_CODE_MESSAGE
            if error:
                detail = f"{MISSING_CODE_MESSAGE} (Spotify returned error: {error})"
            logger.error("Authorization redirect carried no code: %s", error or "-")
            self.fail(MissingCodeError(detail, 400))
            return 400, MISSING_CODE_MESSAGE

        self.state = AuthorizationState.CODE_RECEIVED
        logger.info("Authorization code received, exchanging for access token")
        self.state = AuthorizationState.EXCHANGING
        try:
            credential = await self._exchange(code)
        except TokenExchangeError as exc:
            self.state = AuthorizationState.EXCHANGE_FAILED
            logger.error("Error obtaining access token: %s", exc.detail)
            self.fail(exc)
            return 500, EXCHANGE_FAILED_MESSAGE
        except Exception as exc:
            self.state = AuthorizationState.EXCHANGE_FAILED
            logger.exception("Unexpected failure during token exchange")
            self.fail(TokenExchangeError(str(exc), 500))
            return 500, EXCHANGE_FAILED_MESSAGE

        self.state = AuthorizationState.EXCHANGE_SUCCEEDED
        self._succeed(credential)
        return 200, SUCCESS_MESSAGE


class AuthorizationFlow:
    """Run the browser-based authorization-code grant once."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        *,
        open_browser: Callable[[str], object] = webbrowser.open,
    ):
        self._settings = settings
        self._client = client
        self._open_browser = open_browser
        self.authorization: Optional[AuthorizationRequest] = None

    async def run(self) -> Credential:
        """Obtain a user access token.

        Raises:
            ConfigurationError: Before binding or opening anything, if the app
                id, secret or redirect URI is missing.
            AuthError: If the callback port cannot be bound, or on timeout.
            MissingCodeError: If the redirect carried no authorization code.
            TokenExchangeError: If Spotify rejected the code exchange.
        """

        self._settings.require_user_auth()

        authorization = AuthorizationRequest(
            partial(exchange_code, self._settings, self._client)
        )
        self.authorization = authorization
        auth_url = build_authorize_url(self._settings)

        async with self._listening(authorization):
            logger.info("Opening browser for Spotify authentication...")
            try:
                self._open_browser(auth_url)
            except Exception as exc:
                logger.warning("Could not open browser automatically: %s", exc)
            logger.info("If the browser did not open, visit: %s", auth_url)
            return await self._wait(authorization)

    async def _wait(self, authorization: AuthorizationRequest) -> Credential:
        timeout = self._settings.spotify_auth_timeout
        if timeout is None:
            return await authorization.wait()
        try:
            return await asyncio.wait_for(authorization.wait(), timeout)
        except asyncio.TimeoutError as exc:
            raise AuthError(
                f"No authorization redirect received within {timeout:g} seconds", 408
            ) from exc

    def _bind_socket(self) -> socket.socket:
        host = self._settings.spotify_callback_host
        port = self._settings.callback_port
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
        except OSError as exc:
            sock.close()
            raise AuthError(f"Port {port} unavailable on {host}: {exc}", 503) from exc
        return sock

    @asynccontextmanager
    async def _listening(
        self, authorization: AuthorizationRequest
    ) -> AsyncIterator[None]:
        """Serve the callback route for the duration of the block.

        The server is stopped and the socket closed on every exit path.
        """

        sock = self._bind_socket()
        app = create_callback_app(authorization, self._settings.callback_path)
        config = uvicorn.Config(
            app,
            lifespan="off",
            log_config=None,
            log_level="warning",
            access_log=False,
        )
        server = uvicorn.Server(config)
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))
        serve_task.add_done_callback(
            lambda _task: authorization.fail(
                AuthError("Callback listener stopped before authorization completed")
            )
        )

        try:
            while not server.started:
                if serve_task.done():
                    raise AuthError("Callback listener failed to start", 503)
                await asyncio.sleep(0.01)
            authorization.mark_listening()
            logger.info(
                "Listening for Spotify redirect on http://%s:%s%s",
                self._settings.spotify_callback_host,
                self._settings.callback_port,
                self._settings.callback_path,
            )
            yield
        finally:
            server.should_exit = True
            try:
                await serve_task
            except Exception:
                logger.warning("Callback listener did not shut down cleanly", exc_info=True)
            sock.close()
            authorization.close()
            logger.debug("Callback listener closed")


__all__ = [
    "AuthorizationFlow",
    "AuthorizationRequest",
    "AuthorizationState",
]
