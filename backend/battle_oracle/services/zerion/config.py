from pydantic import BaseModel, Field


class ZerionConfig(BaseModel):
    """Configuration for Zerion API client."""

    base_url: str = "https://api.zerion.io/v1"
    chain_id: str = "solana"
    currency: str = "usd"
    timeout_seconds: float = 30.0
    max_connections: int = 50
    max_keepalive_connections: int = 10
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    top_token_symbols: list[str] = Field(
        default_factory=lambda: [
            "SOL", "USDC", "USDT", "BONK", "JUP", "RAY", "ORCA", "MNGO", "SAMO", "STEP",
        ]
    )
