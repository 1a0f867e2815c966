"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire
from fastapi import FastAPI

from battle_oracle import __version__
from battle_oracle.config import Settings

logger = logging.getLogger(__name__)


def _cluster_name(rpc_url: str) -> str:
    """Cluster name for public Solana RPC hosts (e.g. devnet), else "custom"."""
    host = rpc_url.split("//")[-1].split("/")[0]
    parts = host.split(".")
    if len(parts) == 4 and parts[0] == "api" and parts[2:] == ["solana", "com"]:
        return parts[1]
    return "custom"


def initialize_logfire(settings: Settings, app: FastAPI | None = None) -> None:
    """
    Initialize Logfire tracing for the oracle.

    Must be called once at startup, before any settlement runs.

    Instruments:
    - HTTPX clients (Zerion, IPFS, Solana RPC)
    - the FastAPI app, when one is given
    - Python logging (bridged to Logfire)

    Args:
        settings: Application settings containing the Logfire token
        app: FastAPI application to instrument
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="battle-oracle",
            service_version=__version__,
            environment=_cluster_name(settings.solana.rpc_url),
        )

        logfire.instrument_httpx()

        if app is not None:
            logfire.instrument_fastapi(app)

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
