"""Error taxonomy shared by adapters and services."""


class MacroLoggerError(Exception):
    """Base error carrying an optional HTTP status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ValidationError(MacroLoggerError):
    """Malformed or missing input. Never retried."""


class AuthError(MacroLoggerError):
    """Expired or invalid credential."""


class RateLimitError(MacroLoggerError):
    """Upstream asked the caller to slow down."""

    def __init__(
        self,
        message: str,
        status: int | None = 429,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message, status)
        self.retry_after = retry_after


class StoreError(MacroLoggerError):
    """Non-success response from the spreadsheet store."""


class SchemaConflictError(StoreError):
    """Existing log header diverges from the expected column layout."""


class StoreAuthError(StoreError, AuthError):
    """Store rejected the access token."""


class StoreRateLimitError(StoreError, RateLimitError):
    """Store rate limited the request."""


class NetworkError(MacroLoggerError):
    """Transport failure reaching an external service."""


class ApiRequestError(MacroLoggerError):
    """Unclassified non-success response from the server-side proxy."""
