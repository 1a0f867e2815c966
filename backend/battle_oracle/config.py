"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from battle_oracle.services.ipfs.config import IPFSConfig
from battle_oracle.services.solana.config import SolanaConfig
from battle_oracle.services.zerion.config import ZerionConfig

logger = logging.getLogger(__name__)

YAML_SECTIONS = ("settlement", "storage", "zerion", "ipfs", "solana", "server")


class SettlementConfig(BaseModel):
    """Settlement run parameters."""

    max_concurrent_fetches: int = Field(default=8, ge=1)


class StorageConfig(BaseModel):
    """Where settlement records are persisted."""

    backend: Literal["ipfs", "local"] = "local"
    records_subdir: str = "records"


class ServerConfig(BaseModel):
    """HTTP server parameters."""

    host: str = "0.0.0.0"
    port: int = 4000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API keys and secrets
    zerion_api_key: str = ""
    ipfs_project_id: str = ""
    ipfs_project_secret: str = ""
    admin_keypair_path: str = ""
    logfire_token: str = ""

    # Nested configuration sections
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    zerion: ZerionConfig = Field(default_factory=ZerionConfig)
    ipfs: IPFSConfig = Field(default_factory=IPFSConfig)
    solana: SolanaConfig = Field(default_factory=SolanaConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def records_dir(self) -> Path:
        return self.data_dir / self.storage.records_subdir

    def get_admin_keypair_path(self) -> Path | None:
        """Return the admin keypair file, or None when submission is not configured."""
        if not self.admin_keypair_path:
            return None

        key_path = Path(self.admin_keypair_path).expanduser()
        if key_path.is_file():
            return key_path
        if key_path.exists():
            logger.warning(f"Admin keypair path is not a file: {key_path}")
        else:
            logger.warning(f"Admin keypair file not found: {key_path}")
        return None

    def load_yaml_config(self) -> None:
        """Overlay ``<data_dir>/config.yaml`` onto the operational sections.

        Keys missing from the file keep their current value; each merged
        section is re-validated, so a bad value fails at startup.
        """
        config_path = self.data_dir / "config.yaml"

        if not config_path.is_file():
            logger.warning(
                f"No config.yaml in {self.data_dir}, using defaults. "
                "Run 'python -m battle_oracle init' to create one."
            )
            return

        try:
            overrides = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {config_path}: {e}")
            raise

        for name in YAML_SECTIONS:
            section_overrides = overrides.get(name)
            if not section_overrides:
                continue
            current = getattr(self, name)
            merged = {**current.model_dump(), **section_overrides}
            setattr(self, name, type(current).model_validate(merged))

        logger.info(f"Loaded configuration from {config_path}")


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
