"""Tests for HTTP-based adapters."""

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from macro_logger.adapters.google_token_client import HttpxGoogleTokenClient
from macro_logger.adapters.oauth_client import HttpxOAuthClient
from macro_logger.adapters.parse_client import HttpxParseClient
from macro_logger.domain.errors import (
    ApiRequestError,
    AuthError,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from macro_logger.domain.tokens import RefreshedToken, TokenGrant

BASE_URL = "https://app.test"

Handler = Callable[[httpx.Request], httpx.Response]


def _async_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _oauth_client(handler: Handler) -> HttpxOAuthClient:
    return HttpxOAuthClient(base_url=BASE_URL, http_client=_async_client(handler))


def _parse_client(handler: Handler) -> HttpxParseClient:
    return HttpxParseClient(base_url=BASE_URL, http_client=_async_client(handler))


def test_oauth_client_exchange_posts_to_proxy() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/oauth/token"
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "accessToken": "access",
                "refreshToken": "refresh",
                "expiresIn": 3599,
            },
        )

    client = _oauth_client(handler)

    grant = asyncio.run(
        client.exchange_authorization_code(
            client_id="cid",
            client_secret="secret",
            code="code",
            verifier="verifier",
            redirect_uri="https://app.test/settings",
        )
    )

    assert grant == TokenGrant("access", "refresh", 3599)
    assert seen == [
        {
            "clientId": "cid",
            "clientSecret": "secret",
            "code": "code",
            "codeVerifier": "verifier",
            "redirectUri": "https://app.test/settings",
        }
    ]


def test_oauth_client_refresh_returns_new_access_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/oauth/refresh"
        assert json.loads(request.content)["refreshToken"] == "refresh"
        return httpx.Response(200, json={"accessToken": "access-2", "expiresIn": 3600})

    client = _oauth_client(handler)

    refreshed = asyncio.run(
        client.refresh(client_id="cid", client_secret="secret", refresh_token="refresh")
    )

    assert refreshed == RefreshedToken("access-2", 3600)


@pytest.mark.parametrize(
    ("status", "body", "error_type"),
    [
        (400, {"error": "Missing required field: code"}, ValidationError),
        (401, {"error": "Refresh token expired or revoked"}, AuthError),
        (429, {"error": "Rate limited", "retryAfter": 30}, RateLimitError),
        (502, {"error": "OAuth service unavailable"}, NetworkError),
        (404, {"error": "Not found"}, ApiRequestError),
    ],
)
def test_proxy_errors_are_classified(
    status: int, body: dict[str, object], error_type: type[Exception]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    client = _oauth_client(handler)

    with pytest.raises(error_type) as excinfo:
        asyncio.run(
            client.refresh(client_id="cid", client_secret="secret", refresh_token="r")
        )

    assert str(excinfo.value) == body["error"]
    assert excinfo.value.status == status


def test_rate_limit_carries_retry_after() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "Rate limited", "retryAfter": 30})

    client = _parse_client(handler)

    with pytest.raises(RateLimitError) as excinfo:
        asyncio.run(client.parse("claude", "key", "chicken"))

    assert excinfo.value.retry_after == 30


def test_proxy_transport_failure_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _parse_client(handler)

    with pytest.raises(NetworkError):
        asyncio.run(client.parse("claude", "key", "chicken"))


def test_parse_client_validates_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/parse"
        assert json.loads(request.content) == {
            "provider": "openai",
            "apiKey": "key",
            "input": "chicken",
        }
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "description": "Chicken",
                        "calories": 300,
                        "protein_g": 30,
                        "carbs_g": 0,
                        "fat_g": 10,
                        "warning": "Assumed 4 oz",
                    }
                ]
            },
        )

    client = _parse_client(handler)

    result = asyncio.run(client.parse("openai", "key", "chicken"))

    assert result.meal_label == "Meal"
    assert result.items[0].warning == "Assumed 4 oz"


def test_google_token_client_posts_form() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert b"grant_type=refresh_token" in request.content
        return httpx.Response(400, json={"error": "invalid_grant"})

    client = HttpxGoogleTokenClient(
        token_url="https://oauth2.test/token", http_client=_async_client(handler)
    )

    outcome = asyncio.run(client.request_token({"grant_type": "refresh_token"}))

    assert outcome.status == 400
    assert outcome.body == {"error": "invalid_grant"}


def test_google_token_client_tolerates_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="<html>down</html>")

    client = HttpxGoogleTokenClient(
        token_url="https://oauth2.test/token", http_client=_async_client(handler)
    )

    outcome = asyncio.run(client.request_token({"grant_type": "refresh_token"}))

    assert outcome.status == 503
    assert outcome.body is None


@pytest.mark.parametrize(
    "body",
    [
        {"accessToken": "new"},
        {"accessToken": "new", "expiresIn": "soon"},
        {"accessToken": "", "expiresIn": 3600},
        ["not", "an", "object"],
    ],
)
def test_oauth_client_rejects_malformed_refresh_body(body: object) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    client = _oauth_client(handler)

    with pytest.raises(ApiRequestError, match="Malformed response"):
        asyncio.run(
            client.refresh(client_id="cid", client_secret="secret", refresh_token="r")
        )


def test_oauth_client_exchange_allows_missing_refresh_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"accessToken": "access", "expiresIn": 60})

    client = _oauth_client(handler)

    grant = asyncio.run(
        client.exchange_authorization_code(
            client_id="cid",
            client_secret="secret",
            code="code",
            verifier="verifier",
            redirect_uri="https://app.test/settings",
        )
    )

    assert grant == TokenGrant("access", "", 60)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"meal_label": "Lunch"}),
        httpx.Response(
            200,
            json={
                "items": [
                    {
                        "description": "Chicken",
                        "calories": -5,
                        "protein_g": 30,
                        "carbs_g": 0,
                        "fat_g": 10,
                    }
                ]
            },
        ),
        httpx.Response(200, text="<html>gateway</html>"),
    ],
)
def test_parse_client_rejects_malformed_body(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    client = _parse_client(handler)

    with pytest.raises(ApiRequestError):
        asyncio.run(client.parse("claude", "key", "chicken"))
