"""Settlement core: ranking, payouts, Merkle commitments and proofs.

Everything here except the orchestrator is pure and synchronous.
"""

from .exceptions import (
    InvalidBattleResultError,
    LeafNotFoundError,
    NoParticipantsError,
    SettlementError,
)
from .interfaces import ChainSubmitter, ContentStore, WalletDataProvider
from .merkle import (
    MerkleCommitment,
    MerkleTree,
    commit_battle_result,
    get_proof,
    hash_leaf,
    verify_proof,
)
from .models import (
    MAX_AMOUNT,
    BattleResult,
    Bet,
    MerkleLeaf,
    ParticipantSnapshot,
    Payout,
    PayoutProof,
    RankingResult,
    SettlementOutcome,
    SettlementRecord,
    SnapshotFetch,
    TokenHolding,
)
from .orchestrator import SettlementOrchestrator, compute_settlement
from .payouts import calculate_betting_payouts
from .proofs import build_payout_proof, verify_payout_proof
from .ranking import calculate_winner, rank_participants

__all__ = [
    # Errors
    "SettlementError",
    "NoParticipantsError",
    "InvalidBattleResultError",
    "LeafNotFoundError",
    # Collaborators
    "WalletDataProvider",
    "ContentStore",
    "ChainSubmitter",
    # Models
    "MAX_AMOUNT",
    "TokenHolding",
    "ParticipantSnapshot",
    "Bet",
    "Payout",
    "BattleResult",
    "MerkleLeaf",
    "RankingResult",
    "SnapshotFetch",
    "SettlementRecord",
    "SettlementOutcome",
    "PayoutProof",
    # Core operations
    "rank_participants",
    "calculate_winner",
    "calculate_betting_payouts",
    "MerkleTree",
    "MerkleCommitment",
    "hash_leaf",
    "commit_battle_result",
    "get_proof",
    "verify_proof",
    "build_payout_proof",
    "verify_payout_proof",
    "compute_settlement",
    "SettlementOrchestrator",
]
