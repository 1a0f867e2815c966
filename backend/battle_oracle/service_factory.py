"""Build service clients from application settings."""

import logging

from battle_oracle.config import Settings
from battle_oracle.services.ipfs import IPFSClient, create_ipfs_client
from battle_oracle.services.solana import SolanaRootSubmitter, create_root_submitter
from battle_oracle.services.zerion import ZerionClient, create_zerion_client
from battle_oracle.storage import LocalContentStore

logger = logging.getLogger(__name__)


def create_wallet_provider(settings: Settings) -> ZerionClient:
    return create_zerion_client(settings.zerion_api_key, settings.zerion)


def create_content_store(settings: Settings) -> IPFSClient | LocalContentStore:
    """Content store selected by ``storage.backend``."""
    if settings.storage.backend == "ipfs":
        return create_ipfs_client(
            settings.ipfs_project_id or None,
            settings.ipfs_project_secret or None,
            settings.ipfs,
        )
    return LocalContentStore(settings.records_dir)


def create_submitter(settings: Settings) -> SolanaRootSubmitter | None:
    """Root submitter, or None when no admin keypair is configured."""
    keypair_path = settings.get_admin_keypair_path()
    if keypair_path is None:
        logger.info("Admin keypair not configured - on-chain submission disabled")
        return None
    return create_root_submitter(settings.solana, keypair_path)
