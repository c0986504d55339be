"""Shared helpers for calling the server-side proxy endpoints."""

from typing import TypeVar

import httpx
import pydantic

from macro_logger.domain.errors import (
    ApiRequestError,
    AuthError,
    NetworkError,
    RateLimitError,
    ValidationError,
)

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVER_ERROR = 500

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


async def post_json(
    http_client: httpx.AsyncClient, url: str, payload: dict[str, object]
) -> object:
    """POST a JSON payload to the proxy and return the decoded body."""
    try:
        response = await http_client.post(url, json=payload, timeout=30)
    except httpx.TransportError as exc:
        raise NetworkError(f"Service unavailable: {exc}") from exc
    raise_for_api_status(response)
    try:
        return response.json()
    except ValueError as exc:
        raise ApiRequestError(
            "Proxy returned a non-JSON response", response.status_code
        ) from exc


def parse_response(model: type[ModelT], data: object) -> ModelT:
    """Validate a successful proxy body, raising `ApiRequestError` if malformed."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "body"
            for error in exc.errors()
        )
        raise ApiRequestError(f"Malformed response from proxy: {fields}") from exc


def raise_for_api_status(response: httpx.Response) -> None:
    """Translate a proxy error response into the error taxonomy."""
    if response.is_success:
        return
    status = response.status_code
    body = _error_body(response)
    message = str(body.get("error") or response.reason_phrase or "Request failed")
    if status == HTTP_BAD_REQUEST:
        raise ValidationError(message, status)
    if status == HTTP_UNAUTHORIZED:
        raise AuthError(message, status)
    if status == HTTP_TOO_MANY_REQUESTS:
        retry_after = body.get("retryAfter")
        raise RateLimitError(
            message,
            status,
            retry_after=retry_after if isinstance(retry_after, int) else None,
        )
    if status >= HTTP_SERVER_ERROR:
        raise NetworkError(message, status)
    raise ApiRequestError(message, status)


def _error_body(response: httpx.Response) -> dict[str, object]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
