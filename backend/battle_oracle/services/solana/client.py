"""Submit battle Merkle roots to the on-chain settlement program.

The submitter is built from an explicit ``SolanaConfig`` and admin keypair;
nothing about the connection or signer lives at module level.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any

import httpx
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .config import SolanaConfig
from .exceptions import (
    KeypairError,
    SolanaConfirmationTimeout,
    SolanaRPCError,
    SolanaTransactionError,
)

logger = logging.getLogger(__name__)

_COMMITMENT_LEVELS = {"processed": 0, "confirmed": 1, "finalized": 2}


def load_admin_keypair(path: str | Path) -> Keypair:
    """Load a keypair in the Solana CLI JSON format (64-byte integer array)."""
    key_path = Path(path).expanduser()
    try:
        raw = json.loads(key_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise KeypairError(f"Keypair file not found: {key_path}") from e
    except json.JSONDecodeError as e:
        raise KeypairError(f"Keypair file is not valid JSON: {key_path}") from e

    if not isinstance(raw, list) or len(raw) != 64:
        raise KeypairError(f"Keypair file must hold a 64-byte array: {key_path}")
    try:
        return Keypair.from_bytes(bytes(raw))
    except (ValueError, TypeError) as e:
        raise KeypairError(f"Invalid keypair bytes in {key_path}: {e}") from e


def anchor_discriminator(instruction_name: str) -> bytes:
    return hashlib.sha256(f"global:{instruction_name}".encode("utf-8")).digest()[:8]


class SolanaRootSubmitter:
    """Calls the program's ``set_merkle_root`` instruction."""

    def __init__(
        self,
        config: SolanaConfig,
        keypair: Keypair,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.keypair = keypair
        self.program_id = Pubkey.from_string(config.program_id)
        self.global_state, _ = Pubkey.find_program_address(
            [config.global_state_seed.encode("utf-8")], self.program_id
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

        logger.info(
            f"Initialized SolanaRootSubmitter (rpc={config.rpc_url}, "
            f"program={self.program_id}, admin={keypair.pubkey()})"
        )

    async def __aenter__(self) -> SolanaRootSubmitter:
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed SolanaRootSubmitter")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("SolanaRootSubmitter must be used as async context manager")
        return self._client

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}

        try:
            response = await self.client.post(self.config.rpc_url, json=payload)
        except httpx.RequestError as e:
            raise SolanaRPCError(f"{method} request failed: {e}") from e

        if response.status_code >= 400:
            raise SolanaRPCError(
                f"{method} failed with HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        body = response.json()
        if body.get("error"):
            error = body["error"]
            raise SolanaRPCError(
                f"{method} error: {error.get('message', error)}",
                rpc_code=error.get("code"),
            )
        return body.get("result")

    def build_instruction(self, root: bytes) -> Instruction:
        if len(root) != 32:
            raise ValueError(f"Merkle root must be 32 bytes, got {len(root)}")

        data = anchor_discriminator(self.config.instruction_name) + root
        accounts = [
            AccountMeta(pubkey=self.global_state, is_signer=False, is_writable=True),
            AccountMeta(pubkey=self.keypair.pubkey(), is_signer=True, is_writable=True),
        ]
        return Instruction(self.program_id, data, accounts)

    async def latest_blockhash(self) -> Hash:
        result = await self._rpc("getLatestBlockhash", [{"commitment": self.config.commitment}])
        try:
            return Hash.from_string(result["value"]["blockhash"])
        except (KeyError, TypeError, ValueError) as e:
            raise SolanaRPCError(f"Unexpected getLatestBlockhash result: {result}") from e

    async def submit_root(self, root: bytes) -> str:
        """Send ``set_merkle_root`` and wait for the configured commitment.

        Returns the transaction signature.
        """
        instruction = self.build_instruction(root)
        blockhash = await self.latest_blockhash()

        message = Message.new_with_blockhash([instruction], self.keypair.pubkey(), blockhash)
        transaction = Transaction([self.keypair], message, blockhash)
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")

        signature = await self._rpc(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.config.commitment}],
        )
        logger.info(f"Submitted merkle root {root.hex()} in transaction {signature}")

        await self.wait_for_confirmation(signature)
        return signature

    async def wait_for_confirmation(self, signature: str) -> None:
        target = _COMMITMENT_LEVELS[self.config.commitment]
        deadline = time.monotonic() + self.config.confirm_timeout_seconds

        while True:
            result = await self._rpc(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            status = (result or {}).get("value", [None])[0]

            if status is not None:
                if status.get("err") is not None:
                    raise SolanaTransactionError(
                        f"Transaction {signature} failed: {status['err']}"
                    )
                level = _COMMITMENT_LEVELS.get(status.get("confirmationStatus") or "", -1)
                if level >= target:
                    logger.info(f"Transaction {signature} reached {self.config.commitment}")
                    return

            if time.monotonic() >= deadline:
                raise SolanaConfirmationTimeout(
                    f"Transaction {signature} not {self.config.commitment} after "
                    f"{self.config.confirm_timeout_seconds}s"
                )
            await asyncio.sleep(self.config.confirm_poll_seconds)


def create_root_submitter(config: SolanaConfig, keypair_path: str | Path) -> SolanaRootSubmitter:
    return SolanaRootSubmitter(config, load_admin_keypair(keypair_path))
