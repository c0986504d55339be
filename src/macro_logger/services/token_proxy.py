"""Server-side OAuth token proxy outcomes."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from macro_logger.adapters.google_token_client import TokenEndpointResponse

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE = "OAuth service unavailable"
INVALID_CREDENTIALS = "Invalid OAuth credentials"

HTTP_OK = 200
HTTP_MULTIPLE_CHOICES = 300
HTTP_SERVER_ERROR = 500


class GoogleTokenClient(Protocol):
    """Upstream token endpoint."""

    async def request_token(self, form: dict[str, str]) -> TokenEndpointResponse:
        """Post a grant and return the raw outcome."""


@dataclass(frozen=True)
class ProxyResponse:
    """Status code and JSON body returned to the browser."""

    status: int
    body: dict[str, object]


def missing_field_response(name: str) -> ProxyResponse:
    return ProxyResponse(400, {"error": f"Missing required field: {name}"})


@dataclass
class TokenProxyService:
    """Maps browser token requests onto Google's token endpoint."""

    client: GoogleTokenClient

    async def exchange(  # noqa: PLR0913
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        verifier: str,
        redirect_uri: str,
    ) -> ProxyResponse:
        """Exchange an authorization code for a token pair."""
        outcome = await self._forward(
            {
                "grant_type": "authorization_code",
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "code_verifier": verifier,
                "redirect_uri": redirect_uri,
            }
        )
        if isinstance(outcome, ProxyResponse):
            return outcome
        if not _is_success(outcome.status):
            error = _upstream_error(outcome)
            if error == "invalid_client":
                return ProxyResponse(401, {"error": INVALID_CREDENTIALS})
            if error == "invalid_grant":
                return ProxyResponse(
                    401, {"error": "Authorization code expired or already used"}
                )
            return ProxyResponse(400, {"error": INVALID_CREDENTIALS})
        data = outcome.body or {}
        return ProxyResponse(
            200,
            {
                "accessToken": data.get("access_token"),
                "refreshToken": data.get("refresh_token"),
                "expiresIn": data.get("expires_in"),
            },
        )

    async def refresh(
        self, *, client_id: str, client_secret: str, refresh_token: str
    ) -> ProxyResponse:
        """Obtain a new access token for a refresh token."""
        outcome = await self._forward(
            {
                "grant_type": "refresh_token",
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
            }
        )
        if isinstance(outcome, ProxyResponse):
            return outcome
        if not _is_success(outcome.status):
            if _upstream_error(outcome) == "invalid_grant":
                return ProxyResponse(401, {"error": "Refresh token expired or revoked"})
            return ProxyResponse(401, {"error": INVALID_CREDENTIALS})
        data = outcome.body or {}
        return ProxyResponse(
            200,
            {
                "accessToken": data.get("access_token"),
                "expiresIn": data.get("expires_in"),
            },
        )

    async def _forward(
        self, form: dict[str, str]
    ) -> TokenEndpointResponse | ProxyResponse:
        try:
            outcome = await self.client.request_token(form)
        except httpx.HTTPError:
            logger.exception("Google token endpoint unreachable")
            return ProxyResponse(502, {"error": SERVICE_UNAVAILABLE})
        if outcome.status >= HTTP_SERVER_ERROR:
            logger.warning("Google token endpoint returned %s", outcome.status)
            return ProxyResponse(502, {"error": SERVICE_UNAVAILABLE})
        return outcome


def _is_success(status: int) -> bool:
    return HTTP_OK <= status < HTTP_MULTIPLE_CHOICES


def _upstream_error(outcome: TokenEndpointResponse) -> str:
    error = (outcome.body or {}).get("error")
    return error if isinstance(error, str) else ""
