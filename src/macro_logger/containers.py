"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from macro_logger.adapters.google_token_client import HttpxGoogleTokenClient
from macro_logger.adapters.oauth_client import HttpxOAuthClient
from macro_logger.adapters.parse_client import HttpxParseClient
from macro_logger.adapters.sheets_client import HttpxSheetsClient
from macro_logger.config import Settings
from macro_logger.services.food_log import FoodLogService
from macro_logger.services.oauth import GoogleAuthService
from macro_logger.services.session_settings import SessionSettings
from macro_logger.services.token_proxy import TokenProxyService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_settings: SessionSettings
    token_proxy_service: TokenProxyService
    auth_service: GoogleAuthService
    food_log_service: FoodLogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    session_settings = SessionSettings.from_settings(resolved_settings)
    sheets_client = HttpxSheetsClient.create(resolved_settings.sheets_base_url)
    oauth_client = HttpxOAuthClient.create(resolved_settings.api_base_url)
    parse_client = HttpxParseClient.create(resolved_settings.api_base_url)
    google_token_client = HttpxGoogleTokenClient.create(
        resolved_settings.google_token_url
    )
    token_proxy_service = TokenProxyService(client=google_token_client)
    auth_service = GoogleAuthService(
        settings=session_settings,
        client=oauth_client,
        redirect_uri=resolved_settings.oauth_redirect_uri,
    )
    food_log_service = FoodLogService(
        settings=session_settings,
        parser=parse_client,
        store=sheets_client,
        token_refresher=oauth_client,
    )

    async def close_resources() -> None:
        await sheets_client.close()
        await oauth_client.close()
        await parse_client.close()
        await google_token_client.close()

    return AppContainer(
        settings=resolved_settings,
        session_settings=session_settings,
        token_proxy_service=token_proxy_service,
        auth_service=auth_service,
        food_log_service=food_log_service,
        close_resources=close_resources,
    )
