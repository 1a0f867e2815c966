"""Custom exceptions for Solana root submission."""


class SolanaRPCError(Exception):
    """Base exception for Solana JSON-RPC errors."""

    def __init__(self, message: str, status_code: int | None = None, rpc_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.rpc_code = rpc_code


class SolanaTransactionError(SolanaRPCError):
    """Transaction landed but failed on-chain."""

    pass


class SolanaConfirmationTimeout(SolanaRPCError):
    """Transaction did not reach the requested commitment in time."""

    pass


class KeypairError(Exception):
    """Admin keypair file missing or malformed."""

    pass
