"""Domain models for OAuth tokens."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TokenState:
    """Access/refresh token pair with absolute expiry."""

    access_token: str
    refresh_token: str
    expiry: datetime

    def is_usable(self, now: datetime) -> bool:
        """Return True strictly before expiry."""
        return bool(self.access_token) and now < self.expiry


@dataclass(frozen=True)
class TokenGrant:
    """Result of an authorization-code exchange."""

    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class RefreshedToken:
    """Result of a refresh-token exchange."""

    access_token: str
    expires_in: int


@dataclass(frozen=True)
class PKCEPair:
    """PKCE code verifier and its S256 challenge."""

    verifier: str
    challenge: str
