"""Upstream Google OAuth token endpoint client."""

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class TokenEndpointResponse:
    """Status and decoded body returned by the token endpoint."""

    status: int
    body: dict[str, object] | None


@dataclass
class HttpxGoogleTokenClient:
    """Posts form-encoded grants to Google's token endpoint."""

    token_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, token_url: str) -> "HttpxGoogleTokenClient":
        """Create a token client with a managed httpx session."""
        return cls(token_url=token_url, http_client=httpx.AsyncClient())

    async def request_token(self, form: dict[str, str]) -> TokenEndpointResponse:
        """Send a grant request. Transport errors propagate as httpx errors."""
        response = await self.http_client.post(self.token_url, data=form, timeout=15)
        try:
            body = response.json()
        except ValueError:
            body = None
        return TokenEndpointResponse(
            status=response.status_code,
            body=body if isinstance(body, dict) else None,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
