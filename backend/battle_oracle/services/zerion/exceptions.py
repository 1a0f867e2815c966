"""Custom exceptions for Zerion API service."""


class ZerionAPIError(Exception):
    """Base exception for Zerion API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ZerionAuthError(ZerionAPIError):
    """Authentication failed (401)."""

    pass


class ZerionRateLimitError(ZerionAPIError):
    """Rate limit exceeded (429)."""

    pass


class ZerionNotFoundError(ZerionAPIError):
    """Resource not found (404)."""

    pass


class ZerionSchemaError(ZerionAPIError):
    """Response payload is missing required fields or is malformed."""

    pass
