"""Tests for the OAuth token proxy endpoints."""

from fastapi.testclient import TestClient

from macro_logger.adapters.google_token_client import TokenEndpointResponse
from macro_logger.api.app import create_app
from macro_logger.containers import AppContainer
from tests.conftest import FakeGoogleTokenClient

EXCHANGE_BODY = {
    "clientId": "cid",
    "clientSecret": "secret",
    "code": "4/code",
    "codeVerifier": "verifier",
    "redirectUri": "http://localhost:5173/settings",
}


def test_health(container: AppContainer) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_token_exchange_returns_camel_case_tokens(
    container: AppContainer, google_token_client: FakeGoogleTokenClient
) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post("/api/oauth/token", json=EXCHANGE_BODY)

    assert response.status_code == 200
    assert response.json() == {
        "accessToken": "ya29.access",
        "refreshToken": "1//refresh",
        "expiresIn": 3599,
    }
    assert google_token_client.forms[0]["code_verifier"] == "verifier"


def test_token_exchange_missing_field(container: AppContainer) -> None:
    body = {key: value for key, value in EXCHANGE_BODY.items() if key != "code"}

    with TestClient(create_app(container)) as client:
        response = client.post("/api/oauth/token", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required field: code"}


def test_token_exchange_malformed_body(container: AppContainer) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/api/oauth/token",
            content=b"not json",
            headers={"content-type": "application/json"},
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required field: clientId"}


def test_token_exchange_expired_code(
    container: AppContainer, google_token_client: FakeGoogleTokenClient
) -> None:
    google_token_client.response = TokenEndpointResponse(
        status=400, body={"error": "invalid_grant"}
    )

    with TestClient(create_app(container)) as client:
        response = client.post("/api/oauth/token", json=EXCHANGE_BODY)

    assert response.status_code == 401
    assert response.json() == {"error": "Authorization code expired or already used"}


def test_refresh_revoked_token(
    container: AppContainer, google_token_client: FakeGoogleTokenClient
) -> None:
    google_token_client.response = TokenEndpointResponse(
        status=400, body={"error": "invalid_grant"}
    )

    with TestClient(create_app(container)) as client:
        response = client.post(
            "/api/oauth/refresh",
            json={"clientId": "cid", "clientSecret": "secret", "refreshToken": "r"},
        )

    assert response.status_code == 401
    assert response.json() == {"error": "Refresh token expired or revoked"}


def test_refresh_upstream_outage(
    container: AppContainer, google_token_client: FakeGoogleTokenClient
) -> None:
    google_token_client.response = TokenEndpointResponse(status=500, body=None)

    with TestClient(create_app(container)) as client:
        response = client.post(
            "/api/oauth/refresh",
            json={"clientId": "cid", "clientSecret": "secret", "refreshToken": "r"},
        )

    assert response.status_code == 502
    assert response.json() == {"error": "OAuth service unavailable"}


def test_token_exchange_non_string_field(
    container: AppContainer, google_token_client: FakeGoogleTokenClient
) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/api/oauth/token", json={**EXCHANGE_BODY, "redirectUri": 42}
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required field: redirectUri"}
    assert google_token_client.forms == []
