"""Collaborator protocols the settlement core depends on."""

from typing import Protocol

from .models import ParticipantSnapshot


class WalletDataProvider(Protocol):
    async def fetch_snapshot(self, address: str) -> ParticipantSnapshot | None:
        """Return the wallet's snapshot, or None when no data exists for it."""
        ...


class ContentStore(Protocol):
    async def put(self, data: bytes) -> str:
        """Persist ``data`` and return its content handle."""
        ...

    async def get(self, handle: str) -> bytes:
        ...


class ChainSubmitter(Protocol):
    async def submit_root(self, root: bytes) -> str:
        """Publish a 32-byte Merkle root and return the transaction id."""
        ...
