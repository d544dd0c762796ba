"""Router for the one-shot Spotify OAuth redirect."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from fastapi import APIRouter, FastAPI, Query
from fastapi.responses import PlainTextResponse

if TYPE_CHECKING:
    from spotify_likes.services.spotify_auth.callback import AuthorizationRequest


def create_callback_router(
    authorization: "AuthorizationRequest", path: str
) -> APIRouter:
    """Build a router whose only route hands the redirect to ``authorization``."""

    router = APIRouter()

    @router.get(path, response_class=PlainTextResponse)
    async def oauth_callback(
        code: Optional[str] = Query(None, description="Authorization code from Spotify"),
        error: Optional[str] = Query(None, description="Error returned by Spotify"),
    ) -> PlainTextResponse:
        """Handle the OAuth redirect back from Spotify."""

        status_code, message = await authorization.handle_redirect(
            code=code, error=error
        )
        return PlainTextResponse(message, status_code=status_code)

    return router


def create_callback_app(authorization: "AuthorizationRequest", path: str) -> FastAPI:
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.include_router(create_callback_router(authorization, path))
    return app


__all__ = ["create_callback_app", "create_callback_router"]
