"""Pydantic models for OAuth proxy request bodies."""

from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from macro_logger.services.token_proxy import ProxyResponse, missing_field_response

RequestT = TypeVar("RequestT", bound=BaseModel)


class TokenExchangeRequest(BaseModel):
    """Authorization-code exchange request."""

    model_config = ConfigDict(strict=True)

    client_id: str = Field(alias="clientId", min_length=1)
    client_secret: str = Field(alias="clientSecret", min_length=1)
    code: str = Field(min_length=1)
    code_verifier: str = Field(alias="codeVerifier", min_length=1)
    redirect_uri: str = Field(alias="redirectUri", min_length=1)


class TokenRefreshRequest(BaseModel):
    """Refresh-token request."""

    model_config = ConfigDict(strict=True)

    client_id: str = Field(alias="clientId", min_length=1)
    client_secret: str = Field(alias="clientSecret", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)


def read_request(model: type[RequestT], body: object) -> RequestT | ProxyResponse:
    """Validate a request body, or build the 400 naming the first bad field."""
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        return missing_field_response(first_invalid_field(model, exc))


def first_invalid_field(model: type[BaseModel], exc: ValidationError) -> str:
    """Return the wire name of the first field that failed validation."""
    for error in exc.errors():
        if error["loc"]:
            return str(error["loc"][0])
    # A non-object body fails before any field is checked.
    name, info = next(iter(model.model_fields.items()))
    return info.alias or name
