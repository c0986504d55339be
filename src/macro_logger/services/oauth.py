"""Google OAuth authorization-code flow with PKCE."""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from macro_logger.domain.errors import AuthError
from macro_logger.domain.tokens import PKCEPair, RefreshedToken, TokenGrant
from macro_logger.services.session_settings import SessionSettings

logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"

_VERIFIER_BYTES = 32
_STATE_BYTES = 24


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_pkce() -> PKCEPair:
    """Generate a PKCE verifier (43 chars) and its S256 challenge."""
    verifier = _base64url(secrets.token_bytes(_VERIFIER_BYTES))
    challenge = _base64url(hashlib.sha256(verifier.encode("ascii")).digest())
    return PKCEPair(verifier=verifier, challenge=challenge)


def generate_state() -> str:
    """Generate a random URL-safe state value for CSRF binding."""
    return _base64url(secrets.token_bytes(_STATE_BYTES))


def build_authorization_url(
    *, client_id: str, redirect_uri: str, challenge: str, state: str
) -> str:
    """Build the Google consent URL requesting offline spreadsheet access."""
    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": SHEETS_SCOPE,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
    )
    return f"{AUTHORIZATION_ENDPOINT}?{query}"


class OAuthClient(Protocol):
    """Token exchange operations performed through the proxy."""

    async def exchange_authorization_code(  # noqa: PLR0913
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        verifier: str,
        redirect_uri: str,
    ) -> TokenGrant:
        """Exchange an authorization code for tokens."""

    async def refresh(
        self, *, client_id: str, client_secret: str, refresh_token: str
    ) -> RefreshedToken:
        """Exchange a refresh token for a new access token."""


class PendingAuthorizationStore(Protocol):
    """Holds the verifier and state between redirect and callback."""

    def save(self, verifier: str, state: str) -> None:
        """Remember values for the pending authorization."""

    def load(self) -> tuple[str | None, str | None]:
        """Return the stored (verifier, state)."""

    def clear(self) -> None:
        """Forget any pending authorization."""


@dataclass
class InMemoryPendingAuthorizationStore(PendingAuthorizationStore):
    """Pending authorization values kept in process memory."""

    verifier: str | None = None
    state: str | None = None

    def save(self, verifier: str, state: str) -> None:
        self.verifier = verifier
        self.state = state

    def load(self) -> tuple[str | None, str | None]:
        return self.verifier, self.state

    def clear(self) -> None:
        self.verifier = None
        self.state = None


@dataclass
class GoogleAuthService:
    """Drives authorization start, callback handling and disconnect."""

    settings: SessionSettings
    client: OAuthClient
    redirect_uri: str
    pending: PendingAuthorizationStore = field(
        default_factory=InMemoryPendingAuthorizationStore
    )

    def begin_authorization(self) -> str:
        """Start a new authorization and return the consent URL."""
        pkce = generate_pkce()
        state = generate_state()
        self.pending.save(pkce.verifier, state)
        return build_authorization_url(
            client_id=self.settings.google_client_id,
            redirect_uri=self.redirect_uri,
            challenge=pkce.challenge,
            state=state,
        )

    async def handle_callback(self, callback_url: str) -> str | None:
        """Complete the authorization from a redirect URL.

        Returns the URL without its query string once tokens are stored, or
        None when the URL is not an authorization callback.
        """
        parts = urlsplit(callback_url)
        query = parse_qs(parts.query)
        code = query.get("code", [""])[0]
        state = query.get("state", [""])[0]
        if not code or not state:
            return None

        saved_verifier, saved_state = self.pending.load()
        if state != saved_state or not saved_verifier:
            self.pending.clear()
            logger.warning("Rejected OAuth callback with mismatched state")
            raise AuthError("OAuth state mismatch, possible CSRF attempt")

        grant = await self.client.exchange_authorization_code(
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
            code=code,
            verifier=saved_verifier,
            redirect_uri=self.redirect_uri,
        )
        self.settings.set_tokens(
            grant.access_token, grant.refresh_token, grant.expires_in
        )
        self.pending.clear()
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))

    def disconnect(self) -> None:
        """Drop stored Google tokens."""
        self.settings.clear_tokens()
