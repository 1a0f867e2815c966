from typing import Literal

from pydantic import BaseModel


class SolanaConfig(BaseModel):
    """Configuration for submitting battle roots to the Solana program."""

    rpc_url: str = "https://api.devnet.solana.com"
    program_id: str = "Fo5yHR18hNooLoFzxYcjpi5BoUx5rhnxhzVRetpVeSsY"
    global_state_seed: str = "global_state"
    instruction_name: str = "set_merkle_root"
    commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    timeout_seconds: float = 30.0
    confirm_timeout_seconds: float = 60.0
    confirm_poll_seconds: float = 1.0
