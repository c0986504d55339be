"""FastAPI application factory for the OAuth token proxy."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from macro_logger.api.oauth_models import (
    TokenExchangeRequest,
    TokenRefreshRequest,
    read_request,
)
from macro_logger.app_logging import configure_logging
from macro_logger.containers import AppContainer
from macro_logger.services.token_proxy import ProxyResponse


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/oauth/token")
    async def oauth_token(request: Request) -> JSONResponse:
        """Exchange an authorization code without exposing the client secret."""
        state_container: AppContainer = request.app.state.container
        payload = read_request(TokenExchangeRequest, await _read_json(request))
        if isinstance(payload, ProxyResponse):
            return _to_response(payload)
        outcome = await state_container.token_proxy_service.exchange(
            client_id=payload.client_id,
            client_secret=payload.client_secret,
            code=payload.code,
            verifier=payload.code_verifier,
            redirect_uri=payload.redirect_uri,
        )
        if outcome.status != 200:  # noqa: PLR2004
            logger.info("Token exchange rejected with %s", outcome.status)
        return _to_response(outcome)

    @app.post("/api/oauth/refresh")
    async def oauth_refresh(request: Request) -> JSONResponse:
        """Refresh an access token without exposing the client secret."""
        state_container: AppContainer = request.app.state.container
        payload = read_request(TokenRefreshRequest, await _read_json(request))
        if isinstance(payload, ProxyResponse):
            return _to_response(payload)
        outcome = await state_container.token_proxy_service.refresh(
            client_id=payload.client_id,
            client_secret=payload.client_secret,
            refresh_token=payload.refresh_token,
        )
        if outcome.status != 200:  # noqa: PLR2004
            logger.info("Token refresh rejected with %s", outcome.status)
        return _to_response(outcome)

    return app


async def _read_json(request: Request) -> object:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _to_response(outcome: ProxyResponse) -> JSONResponse:
    return JSONResponse(status_code=outcome.status, content=outcome.body)
