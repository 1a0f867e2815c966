"""Storage layer for settlement records.

This package provides:
- A local content-addressed record store (sha256 handles, atomic writes)
- Storage exceptions shared with the IPFS content store
"""

from .exceptions import ContentIntegrityError, ContentNotFoundError, StorageError
from .files import LocalContentStore, content_handle

__all__ = [
    "LocalContentStore",
    "content_handle",
    "StorageError",
    "ContentNotFoundError",
    "ContentIntegrityError",
]
