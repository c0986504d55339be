"""Client for the AI parse proxy endpoint."""

from dataclasses import dataclass

import httpx

from macro_logger.adapters.proxy_api import parse_response, post_json
from macro_logger.domain.parsing import ParseResult


@dataclass
class HttpxParseClient:
    """Sends free-text meal descriptions to the parse proxy."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxParseClient":
        """Create a parse client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def parse(self, provider: str, api_key: str, text: str) -> ParseResult:
        """Parse meal text into structured items with the given provider."""
        data = await post_json(
            self.http_client,
            f"{self.base_url}/api/parse",
            {"provider": provider, "apiKey": api_key, "input": text},
        )
        return parse_response(ParseResult, data)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
