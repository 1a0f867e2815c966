"""Zerion portfolio API integration."""

from .client import ZerionClient, create_zerion_client
from .config import ZerionConfig
from .exceptions import (
    ZerionAPIError,
    ZerionAuthError,
    ZerionNotFoundError,
    ZerionRateLimitError,
    ZerionSchemaError,
)
from .models import TokenPrice, TopToken

__all__ = [
    "ZerionClient",
    "create_zerion_client",
    "ZerionConfig",
    "ZerionAPIError",
    "ZerionAuthError",
    "ZerionNotFoundError",
    "ZerionRateLimitError",
    "ZerionSchemaError",
    "TokenPrice",
    "TopToken",
]
