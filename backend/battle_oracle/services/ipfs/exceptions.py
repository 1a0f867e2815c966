"""Custom exceptions for IPFS storage."""

from battle_oracle.storage.exceptions import ContentNotFoundError, StorageError


class IPFSError(StorageError):
    """Base exception for IPFS API errors."""

    pass


class IPFSNotFoundError(IPFSError, ContentNotFoundError):
    """CID could not be resolved."""

    pass
