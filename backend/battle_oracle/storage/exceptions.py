"""Exceptions for settlement record storage."""


class StorageError(Exception):
    """Base exception for content store failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ContentNotFoundError(StorageError):
    """No content stored under the requested handle."""

    pass


class ContentIntegrityError(StorageError):
    """Stored content does not match its handle."""

    pass
