"""Solana settlement program integration."""

from .client import (
    SolanaRootSubmitter,
    anchor_discriminator,
    create_root_submitter,
    load_admin_keypair,
)
from .config import SolanaConfig
from .exceptions import (
    KeypairError,
    SolanaConfirmationTimeout,
    SolanaRPCError,
    SolanaTransactionError,
)

__all__ = [
    "SolanaRootSubmitter",
    "create_root_submitter",
    "load_admin_keypair",
    "anchor_discriminator",
    "SolanaConfig",
    "SolanaRPCError",
    "SolanaTransactionError",
    "SolanaConfirmationTimeout",
    "KeypairError",
]
