"""Tests for the Solana Merkle root submitter."""

import asyncio
import base64
import hashlib
import json

import httpx
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from battle_oracle.services.solana import (
    KeypairError,
    SolanaConfig,
    SolanaRootSubmitter,
    SolanaRPCError,
    SolanaTransactionError,
    anchor_discriminator,
    load_admin_keypair,
)

CONFIG = SolanaConfig(rpc_url="https://rpc.test", confirm_poll_seconds=0, confirm_timeout_seconds=5)
ROOT = bytes(range(32))
SIGNATURE = "5" * 88


def test_anchor_discriminator() -> None:
    expected = hashlib.sha256(b"global:set_merkle_root").digest()[:8]

    assert anchor_discriminator("set_merkle_root") == expected
    assert len(expected) == 8


def test_load_admin_keypair(tmp_path) -> None:
    keypair = Keypair()
    path = tmp_path / "admin.json"
    path.write_text(json.dumps(list(bytes(keypair))))

    loaded = load_admin_keypair(path)

    assert loaded.pubkey() == keypair.pubkey()


def test_load_admin_keypair_rejects_bad_files(tmp_path) -> None:
    with pytest.raises(KeypairError):
        load_admin_keypair(tmp_path / "missing.json")

    short = tmp_path / "short.json"
    short.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(KeypairError):
        load_admin_keypair(short)


def test_build_instruction() -> None:
    keypair = Keypair()
    submitter = SolanaRootSubmitter(CONFIG, keypair)

    instruction = submitter.build_instruction(ROOT)

    program_id = Pubkey.from_string(CONFIG.program_id)
    global_state, _ = Pubkey.find_program_address([b"global_state"], program_id)
    assert instruction.program_id == program_id
    assert bytes(instruction.data) == anchor_discriminator("set_merkle_root") + ROOT
    assert [meta.pubkey for meta in instruction.accounts] == [global_state, keypair.pubkey()]
    assert instruction.accounts[1].is_signer


def test_build_instruction_rejects_short_root() -> None:
    submitter = SolanaRootSubmitter(CONFIG, Keypair())

    with pytest.raises(ValueError):
        submitter.build_instruction(b"\x00" * 31)


def rpc_handler(statuses: list, sent: list):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        method = payload["method"]
        if method == "getLatestBlockhash":
            result = {"context": {"slot": 1}, "value": {"blockhash": str(Hash.default()), "lastValidBlockHeight": 100}}
        elif method == "sendTransaction":
            sent.append(payload["params"][0])
            result = SIGNATURE
        elif method == "getSignatureStatuses":
            result = {"context": {"slot": 2}, "value": [statuses.pop(0) if statuses else None]}
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32601, "message": "Method not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    return handler


def submit(handler, keypair: Keypair | None = None) -> str:
    submitter = SolanaRootSubmitter(CONFIG, keypair or Keypair(), transport=httpx.MockTransport(handler))

    async def run() -> str:
        async with submitter:
            return await submitter.submit_root(ROOT)

    return asyncio.run(run())


def test_submit_root_waits_for_confirmation() -> None:
    keypair = Keypair()
    sent: list[str] = []
    statuses = [
        None,
        {"slot": 2, "confirmations": 0, "err": None, "confirmationStatus": "processed"},
        {"slot": 2, "confirmations": 1, "err": None, "confirmationStatus": "confirmed"},
    ]

    signature = submit(rpc_handler(statuses, sent), keypair)

    assert signature == SIGNATURE
    assert statuses == []
    transaction = Transaction.from_bytes(base64.b64decode(sent[0]))
    assert transaction.message.account_keys[0] == keypair.pubkey()
    assert bytes(transaction.message.instructions[0].data).endswith(ROOT)


def test_failed_transaction_raises() -> None:
    statuses = [{"slot": 2, "confirmations": 0, "err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "confirmed"}]

    with pytest.raises(SolanaTransactionError):
        submit(rpc_handler(statuses, []))


def test_rpc_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32002, "message": "Blockhash not found"}})

    with pytest.raises(SolanaRPCError) as exc_info:
        submit(handler)

    assert exc_info.value.rpc_code == -32002
