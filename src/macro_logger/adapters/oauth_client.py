"""OAuth token exchange client routed through the server-side proxy."""

from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ConfigDict, Field

from macro_logger.adapters.proxy_api import parse_response, post_json
from macro_logger.domain.tokens import RefreshedToken, TokenGrant


class _ExchangeBody(BaseModel):
    model_config = ConfigDict(strict=True)

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    expires_in: int = Field(alias="expiresIn")


class _RefreshBody(BaseModel):
    model_config = ConfigDict(strict=True)

    access_token: str = Field(alias="accessToken", min_length=1)
    expires_in: int = Field(alias="expiresIn")


@dataclass
class HttpxOAuthClient:
    """Exchanges and refreshes Google tokens via the proxy endpoints."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxOAuthClient":
        """Create an OAuth client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def exchange_authorization_code(  # noqa: PLR0913
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        verifier: str,
        redirect_uri: str,
    ) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        data = await post_json(
            self.http_client,
            f"{self.base_url}/api/oauth/token",
            {
                "clientId": client_id,
                "clientSecret": client_secret,
                "code": code,
                "codeVerifier": verifier,
                "redirectUri": redirect_uri,
            },
        )
        body = parse_response(_ExchangeBody, data)
        return TokenGrant(
            access_token=body.access_token,
            refresh_token=body.refresh_token or "",
            expires_in=body.expires_in,
        )

    async def refresh(
        self, *, client_id: str, client_secret: str, refresh_token: str
    ) -> RefreshedToken:
        """Obtain a new access token from a refresh token."""
        data = await post_json(
            self.http_client,
            f"{self.base_url}/api/oauth/refresh",
            {
                "clientId": client_id,
                "clientSecret": client_secret,
                "refreshToken": refresh_token,
            },
        )
        body = parse_response(_RefreshBody, data)
        return RefreshedToken(
            access_token=body.access_token, expires_in=body.expires_in
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
