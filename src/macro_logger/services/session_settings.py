"""Owned per-session configuration and token state."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from macro_logger.config import Settings, parse_provider_keys
from macro_logger.domain.entries import MacroTargets
from macro_logger.domain.tokens import TokenState


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionSettings:
    """Session-wide settings shared by the food log and the auth flow.

    Token state is only replaced through `set_tokens`, `update_access_token`
    and `clear_tokens`.
    """

    google_client_id: str = ""
    google_client_secret: str = ""
    spreadsheet_id: str = ""
    ai_providers: dict[str, str] = field(default_factory=dict)
    active_provider: str = ""
    tokens: TokenState | None = None
    macro_targets: MacroTargets | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, now: datetime | None = None
    ) -> "SessionSettings":
        """Seed session settings from environment configuration."""
        providers = parse_provider_keys(settings.ai_provider_keys)
        if settings.ai_api_key:
            providers.setdefault(settings.ai_provider, settings.ai_api_key)
        session = cls(
            google_client_id=settings.google_client_id,
            google_client_secret=settings.google_client_secret,
            spreadsheet_id=settings.spreadsheet_id,
            ai_providers=providers,
            active_provider=(
                settings.ai_provider
                if settings.ai_provider in providers
                else next(iter(providers), "")
            ),
        )
        if settings.google_access_token or settings.google_refresh_token:
            session.set_tokens(
                settings.google_access_token,
                settings.google_refresh_token,
                settings.google_token_expires_in,
                now=now,
            )
        return session

    @property
    def access_token(self) -> str:
        return self.tokens.access_token if self.tokens else ""

    @property
    def refresh_token(self) -> str:
        return self.tokens.refresh_token if self.tokens else ""

    def add_provider(self, provider: str, api_key: str) -> None:
        """Register a provider key; the first provider becomes active."""
        if provider in self.ai_providers:
            return
        self.ai_providers[provider] = api_key
        if not self.active_provider:
            self.active_provider = provider

    def remove_provider(self, provider: str) -> None:
        """Remove a provider and re-target the active provider if needed."""
        self.ai_providers.pop(provider, None)
        if self.active_provider == provider:
            self.active_provider = next(iter(self.ai_providers), "")

    def set_active_provider(self, provider: str) -> None:
        self.active_provider = provider

    def api_key_for_active_provider(self) -> str:
        """Return the active provider's key, or an empty string."""
        return self.ai_providers.get(self.active_provider, "")

    def set_google_credentials(self, client_id: str, client_secret: str) -> None:
        self.google_client_id = client_id
        self.google_client_secret = client_secret

    def set_spreadsheet_id(self, spreadsheet_id: str) -> None:
        self.spreadsheet_id = spreadsheet_id

    def set_macro_targets(self, targets: MacroTargets | None) -> None:
        """Set daily macro goals, or clear them with None."""
        self.macro_targets = targets

    def set_tokens(
        self,
        access_token: str,
        refresh_token: str,
        expires_in: int,
        now: datetime | None = None,
    ) -> None:
        """Store a freshly issued token pair."""
        issued_at = now or _utcnow()
        self.tokens = TokenState(
            access_token=access_token,
            refresh_token=refresh_token,
            expiry=issued_at + timedelta(seconds=expires_in),
        )

    def update_access_token(
        self, access_token: str, expires_in: int, now: datetime | None = None
    ) -> None:
        """Replace the access token after a refresh, keeping the refresh token."""
        issued_at = now or _utcnow()
        self.tokens = TokenState(
            access_token=access_token,
            refresh_token=self.refresh_token,
            expiry=issued_at + timedelta(seconds=expires_in),
        )

    def clear_tokens(self) -> None:
        self.tokens = None

    def is_configured(self) -> bool:
        """Return True when providers, OAuth client and spreadsheet are set."""
        return bool(
            self.ai_providers
            and self.active_provider
            and self.google_client_id
            and self.google_client_secret
            and self.spreadsheet_id
        )

    def is_google_connected(self, now: datetime | None = None) -> bool:
        """Return True while the access token has not expired."""
        if self.tokens is None:
            return False
        return self.tokens.is_usable(now or _utcnow())
