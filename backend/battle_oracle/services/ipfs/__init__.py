"""IPFS content store integration."""

from .client import IPFSClient, create_ipfs_client
from .config import IPFSConfig
from .exceptions import IPFSError, IPFSNotFoundError

__all__ = [
    "IPFSClient",
    "create_ipfs_client",
    "IPFSConfig",
    "IPFSError",
    "IPFSNotFoundError",
]
