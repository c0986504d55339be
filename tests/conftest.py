"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta, timezone

import pytest

from macro_logger.adapters.google_token_client import TokenEndpointResponse
from macro_logger.config import Settings
from macro_logger.containers import AppContainer
from macro_logger.domain.entries import LogEntry
from macro_logger.domain.errors import AuthError
from macro_logger.domain.parsing import ParseResult
from macro_logger.domain.tokens import RefreshedToken, TokenGrant
from macro_logger.services.food_log import (
    FoodLogService,
    FoodParser,
    LogStore,
    TokenRefresher,
)
from macro_logger.services.oauth import GoogleAuthService
from macro_logger.services.session_settings import SessionSettings
from macro_logger.services.token_proxy import GoogleTokenClient, TokenProxyService

PACIFIC = timezone(timedelta(hours=-8))
FIXED_NOW = datetime(2026, 2, 21, 12, 0, tzinfo=PACIFIC)

CHICKEN_RESULT = {
    "meal_label": "Lunch",
    "items": [
        {
            "description": "Chicken",
            "calories": 300,
            "protein_g": 30,
            "carbs_g": 0,
            "fat_g": 10,
        }
    ],
}


@dataclass
class InMemoryLogStore(LogStore):
    """Log store keeping rows in memory, with scripted failures."""

    rows: list[LogEntry] = field(default_factory=list)
    write_failures: list[Exception] = field(default_factory=list)
    delete_failures: list[Exception] = field(default_factory=list)
    ensure_calls: list[str] = field(default_factory=list)
    write_calls: list[tuple[str, list[LogEntry]]] = field(default_factory=list)
    delete_calls: list[tuple[str, list[int]]] = field(default_factory=list)

    async def ensure_log_sheet(self, log_id: str, token: str) -> None:
        self.ensure_calls.append(token)

    async def read_all_entries(self, log_id: str, token: str) -> list[LogEntry]:
        return [
            replace(entry, sheet_row=index)
            for index, entry in enumerate(self.rows)
        ]

    async def write_entries(
        self, log_id: str, token: str, entries: list[LogEntry]
    ) -> None:
        self.write_calls.append((token, list(entries)))
        if self.write_failures:
            raise self.write_failures.pop(0)
        self.rows.extend(entries)

    async def delete_entries(
        self, log_id: str, token: str, sheet_rows: list[int]
    ) -> None:
        self.delete_calls.append((token, list(sheet_rows)))
        if self.delete_failures:
            raise self.delete_failures.pop(0)
        for row in sorted(sheet_rows, reverse=True):
            del self.rows[row]


@dataclass
class FakeFoodParser(FoodParser):
    """Parser returning queued results or raising queued errors."""

    results: list[dict[str, object] | Exception] = field(default_factory=list)
    calls: list[tuple[str, str, str]] = field(default_factory=list)

    async def parse(self, provider: str, api_key: str, text: str) -> ParseResult:
        self.calls.append((provider, api_key, text))
        outcome = self.results.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return ParseResult.model_validate(outcome)


@dataclass
class FakeTokenRefresher(TokenRefresher):
    """Refresher returning a fixed token or raising."""

    access_token: str = "new-token"
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def refresh(
        self, *, client_id: str, client_secret: str, refresh_token: str
    ) -> RefreshedToken:
        self.calls.append(refresh_token)
        if self.error is not None:
            raise self.error
        return RefreshedToken(access_token=self.access_token, expires_in=3600)


@dataclass
class FakeOAuthClient(FakeTokenRefresher):
    """OAuth client recording exchanges."""

    exchanges: list[dict[str, str]] = field(default_factory=list)

    async def exchange_authorization_code(  # noqa: PLR0913
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        verifier: str,
        redirect_uri: str,
    ) -> TokenGrant:
        self.exchanges.append(
            {"code": code, "verifier": verifier, "redirect_uri": redirect_uri}
        )
        if self.error is not None:
            raise self.error
        return TokenGrant(
            access_token="issued-access",
            refresh_token="issued-refresh",
            expires_in=3600,
        )


@dataclass
class FakeGoogleTokenClient(GoogleTokenClient):
    """Upstream token endpoint returning a scripted outcome."""

    response: TokenEndpointResponse | Exception = field(
        default_factory=lambda: TokenEndpointResponse(
            status=200,
            body={
                "access_token": "ya29.access",
                "refresh_token": "1//refresh",
                "expires_in": 3599,
            },
        )
    )
    forms: list[dict[str, str]] = field(default_factory=list)

    async def request_token(self, form: dict[str, str]) -> TokenEndpointResponse:
        self.forms.append(form)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def make_session_settings(**overrides: object) -> SessionSettings:
    """Build configured session settings with a valid token pair."""
    session = SessionSettings(
        google_client_id="cid",
        google_client_secret="csecret",
        spreadsheet_id="sheet-123",
        ai_providers={"claude": "test-key"},
        active_provider="claude",
    )
    session.set_tokens(
        "valid-token",
        "refresh-token",
        3600,
        now=datetime.now(tz=UTC),
    )
    for name, value in overrides.items():
        setattr(session, name, value)
    return session


def make_food_log(
    session: SessionSettings | None = None,
    parser: FakeFoodParser | None = None,
    store: InMemoryLogStore | None = None,
    refresher: FakeTokenRefresher | None = None,
) -> FoodLogService:
    """Build a food log service on fakes with a fixed clock and timezone."""
    return FoodLogService(
        settings=session or make_session_settings(),
        parser=parser or FakeFoodParser(),
        store=store or InMemoryLogStore(),
        token_refresher=refresher or FakeTokenRefresher(),
        clock=lambda: FIXED_NOW,
        new_group_id=lambda: "group-1",
        local_tz=PACIFIC,
    )


def auth_failure() -> AuthError:
    return AuthError("Unauthorized", 401)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        google_client_id="client-id",
        google_client_secret="client-secret",
        spreadsheet_id="sheet-123",
        ai_api_key="ai-key",
    )


@pytest.fixture
def google_token_client() -> FakeGoogleTokenClient:
    return FakeGoogleTokenClient()


@pytest.fixture
def container(
    settings: Settings, google_token_client: FakeGoogleTokenClient
) -> AppContainer:
    session_settings = SessionSettings.from_settings(settings)
    oauth_client = FakeOAuthClient()

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_settings=session_settings,
        token_proxy_service=TokenProxyService(client=google_token_client),
        auth_service=GoogleAuthService(
            settings=session_settings,
            client=oauth_client,
            redirect_uri=settings.oauth_redirect_uri,
        ),
        food_log_service=make_food_log(session=session_settings),
        close_resources=close_resources,
    )
