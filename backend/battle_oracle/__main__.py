"""Battle Oracle CLI entry point."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

from battle_oracle import __version__
from battle_oracle.config import get_settings
from battle_oracle.service_factory import (
    create_content_store,
    create_submitter,
    create_wallet_provider,
)
from battle_oracle.services.solana import KeypairError, SolanaRPCError
from battle_oracle.services.zerion import ZerionAPIError
from battle_oracle.settlement import (
    LeafNotFoundError,
    SettlementError,
    SettlementOrchestrator,
    SettlementRecord,
    build_payout_proof,
    verify_proof,
)
from battle_oracle.storage import StorageError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Battle Oracle Configuration
# Operational parameters only. API keys and the admin keypair path belong in .env.

settlement:
  max_concurrent_fetches: 8

storage:
  backend: local   # local | ipfs
  records_subdir: records

zerion:
  chain_id: solana
  timeout_seconds: 30.0
  max_retries: 3

ipfs:
  api_url: https://ipfs.infura.io:5001

solana:
  rpc_url: https://api.devnet.solana.com
  program_id: Fo5yHR18hNooLoFzxYcjpi5BoUx5rhnxhzVRetpVeSsY
  commitment: confirmed

server:
  host: 0.0.0.0
  port: 4000
"""


def _init_logfire(app=None) -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from battle_oracle.observability import initialize_logfire

        initialize_logfire(get_settings(), app)
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        (data_dir / "records").mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set ZERION_API_KEY (and ADMIN_KEYPAIR_PATH to submit roots) in .env")
        print("2. Review data/config.yaml")
        print("3. Run 'python -m battle_oracle serve' to start the API\n")
        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Battle Oracle Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Settlement:")
        print(f"  Max Concurrent Fetches: {settings.settlement.max_concurrent_fetches}\n")

        print("Storage:")
        print(f"  Backend: {settings.storage.backend}")
        if settings.storage.backend == "ipfs":
            print(f"  IPFS API: {settings.ipfs.api_url}\n")
        else:
            print(f"  Records: {settings.records_dir}\n")

        print("Zerion:")
        print(f"  Base URL: {settings.zerion.base_url}")
        print(f"  Chain: {settings.zerion.chain_id}\n")

        print("Solana:")
        print(f"  RPC: {settings.solana.rpc_url}")
        print(f"  Program: {settings.solana.program_id}")
        print(f"  Commitment: {settings.solana.commitment}\n")

        print("Secrets:")
        print(f"  Zerion API Key: {'✓ Set' if settings.zerion_api_key else '✗ Not set'}")
        print(f"  IPFS Project: {'✓ Set' if settings.ipfs_project_id else '✗ Not set'}")
        print(f"  Admin Keypair: {'✓ Set' if settings.admin_keypair_path else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1


def cmd_snapshot(args: argparse.Namespace) -> int:
    """Fetch and print one wallet snapshot."""

    async def run():
        async with create_wallet_provider(get_settings()) as client:
            return await client.fetch_snapshot(args.address)

    try:
        snapshot = asyncio.run(run())
    except ZerionAPIError as e:
        print(f"\n❌ Snapshot fetch failed: {e}\n")
        return 1

    if snapshot is None:
        print(f"\nNo snapshot available for {args.address}\n")
        return 1

    print(snapshot.model_dump_json(by_alias=True, indent=2))
    return 0


def cmd_settle(args: argparse.Namespace) -> int:
    """Settle a battle from a JSON file of players, bets and prize pool."""
    _init_logfire()

    try:
        request = json.loads(Path(args.input).read_text(encoding="utf-8"))
        from battle_oracle.api.server import SettleRequest

        body = SettleRequest.model_validate(request)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"\n❌ Invalid settlement input: {e}\n")
        return 1

    settings = get_settings()

    submitter = None
    if args.submit:
        try:
            submitter = create_submitter(settings)
        except KeypairError as e:
            print(f"\n❌ Cannot submit: {e}\n")
            return 1
        if submitter is None:
            print("\n❌ --submit requires ADMIN_KEYPAIR_PATH pointing to a keypair file\n")
            return 1

    async def run_settlement():
        async with create_wallet_provider(settings) as wallet_data, \
                create_content_store(settings) as content_store:
            orchestrator = SettlementOrchestrator(
                wallet_data,
                content_store,
                max_concurrent_fetches=settings.settlement.max_concurrent_fetches,
            )
            return await orchestrator.settle(
                args.battle_id, body.players, body.bets, body.prize_pool
            )

    async def run_submission(root: bytes) -> str:
        async with submitter:
            return await submitter.submit_root(root)

    try:
        outcome = asyncio.run(run_settlement())
    except (SettlementError, StorageError) as e:
        logger.error(f"Settlement failed: {e}", exc_info=True)
        print(f"\n❌ Settlement failed: {e}\n")
        return 1

    record = outcome.record
    print(f"\n=== Battle {record.battle_id} Settled ===\n")
    print(f"Winner: {record.winner}")
    print(f"Winner Amount: {record.winner_amount}")
    print(f"Betting Payouts: {len(record.betting_payouts)}")
    for payout in record.betting_payouts:
        print(f"  • {payout.recipient}: {payout.amount}")
    if record.dropped:
        print(f"Dropped Participants: {len(record.dropped)}")
        for fetch in record.dropped:
            print(f"  • {fetch.participant} ({fetch.status})")
    print(f"\nMerkle Root: {outcome.merkle_root}")
    print(f"Content Handle: {outcome.content_handle}")

    if submitter is not None:
        try:
            signature = asyncio.run(run_submission(bytes.fromhex(outcome.merkle_root)))
        except SolanaRPCError as e:
            logger.error(f"Root submission failed: {e}")
            print(f"\n❌ Root submission failed: {e} (record stored as {outcome.content_handle})\n")
            return 1
        print(f"Transaction: {signature}")
    print()
    return 0


def cmd_proof(args: argparse.Namespace) -> int:
    """Print the inclusion proof for a payout in a stored settlement record."""

    async def load():
        async with create_content_store(get_settings()) as store:
            return SettlementRecord.model_validate_json(await store.get(args.handle))

    try:
        record = asyncio.run(load())
        proof = build_payout_proof(record.battle_result(), args.player, args.amount)
    except LeafNotFoundError:
        print(f"\n❌ No payout of {args.amount} to {args.player} in {args.handle}\n")
        return 1
    except (StorageError, ValidationError) as e:
        print(f"\n❌ Could not load record {args.handle}: {e}\n")
        return 1

    print(json.dumps({"merkleRoot": record.merkle_root, **proof.model_dump(by_alias=True)}, indent=2))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify an inclusion proof against a root."""
    try:
        valid = verify_proof(args.root, args.leaf, args.proof)
    except ValueError as e:
        print(f"\n❌ Malformed hash: {e}\n")
        return 1

    print("✓ Proof valid" if valid else "✗ Proof invalid")
    return 0 if valid else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API."""
    import uvicorn

    from battle_oracle.api.server import app

    settings = get_settings()
    _init_logfire(app)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    print(f"\n=== Battle Oracle API v{__version__} ===\n")
    uvicorn.run(
        app,
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
        log_level="debug" if args.debug else "info",
    )
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Battle Oracle: portfolio battle settlement and payout proofs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Battle Oracle {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser("init", help="Initialize data directory and config")
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser("config", help="Display merged configuration")
    parser_config.set_defaults(func=cmd_config)

    parser_snapshot = subparsers.add_parser("snapshot", help="Fetch one wallet snapshot")
    parser_snapshot.add_argument("--address", required=True, help="Wallet address")
    parser_snapshot.set_defaults(func=cmd_snapshot)

    parser_settle = subparsers.add_parser("settle", help="Settle a battle")
    parser_settle.add_argument("--battle-id", required=True, help="Battle identifier")
    parser_settle.add_argument(
        "--input",
        required=True,
        help="JSON file with players, bets and prizePool",
    )
    parser_settle.add_argument(
        "--submit",
        action="store_true",
        help="Submit the Merkle root on-chain after settlement",
    )
    parser_settle.set_defaults(func=cmd_settle)

    parser_proof = subparsers.add_parser("proof", help="Inclusion proof for a stored payout")
    parser_proof.add_argument("--handle", required=True, help="Settlement record handle")
    parser_proof.add_argument("--player", required=True, help="Payout recipient")
    parser_proof.add_argument("--amount", required=True, type=int, help="Payout amount")
    parser_proof.set_defaults(func=cmd_proof)

    parser_verify = subparsers.add_parser("verify", help="Verify an inclusion proof")
    parser_verify.add_argument("--root", required=True, help="Merkle root (hex)")
    parser_verify.add_argument("--leaf", required=True, help="Leaf hash (hex)")
    parser_verify.add_argument("--proof", nargs="*", default=[], help="Sibling hashes (hex)")
    parser_verify.set_defaults(func=cmd_verify)

    parser_serve = subparsers.add_parser("serve", help="Start the HTTP API")
    parser_serve.add_argument("--host", help="Bind address")
    parser_serve.add_argument("--port", type=int, help="Bind port")
    parser_serve.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
