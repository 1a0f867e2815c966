"""Payout inclusion proofs for settled battles."""

import logging

from .merkle import commit_battle_result, verify_proof
from .models import BattleResult, PayoutProof

logger = logging.getLogger(__name__)


def build_payout_proof(result: BattleResult, recipient: str, amount: int) -> PayoutProof:
    """Prove that ``recipient`` is owed exactly ``amount`` in ``result``.

    Raises:
        LeafNotFoundError: If no leaf matches the ``(recipient, amount)`` pair.
        InvalidBattleResultError: If the result cannot be committed.
    """
    commitment = commit_battle_result(result)
    leaf = commitment.find_leaf(recipient, amount)

    proof = commitment.tree.get_hex_proof(leaf.hash)
    logger.debug(
        f"Built proof for {recipient} in battle {result.battle_id} "
        f"({len(proof)} siblings)"
    )
    return PayoutProof(proof=proof, leaf_hash=leaf.hash_hex, amount=amount)


def verify_payout_proof(root: str, payout_proof: PayoutProof) -> bool:
    return verify_proof(root, payout_proof.leaf_hash, payout_proof.proof)
