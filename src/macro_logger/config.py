"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

SUPPORTED_PROVIDERS = ("claude", "openai", "gemini")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    google_client_id: str
    google_client_secret: str
    spreadsheet_id: str = ""
    google_access_token: str = ""
    google_refresh_token: str = ""
    google_token_expires_in: int = 0
    ai_provider: str = "claude"
    ai_api_key: str = ""
    ai_provider_keys: str | None = None
    api_base_url: str = "http://localhost:7071"
    oauth_redirect_uri: str = "http://localhost:5173/settings"
    sheets_base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    environment: str = _ENVIRONMENT
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_keys(raw: str | None) -> dict[str, str]:
    """Parse `provider=key` pairs from env, skipping unknown providers."""
    if raw is None:
        return {}
    keys: dict[str, str] = {}
    for chunk in raw.split(","):
        name, sep, key = chunk.partition("=")
        name = name.strip().lower()
        key = key.strip()
        if not sep or not key:
            continue
        if name in SUPPORTED_PROVIDERS:
            keys[name] = key
    return keys
