"""Deterministic Merkle commitments over battle payouts.

Commitment rules (shared with every verifier of a battle root):

1. Leaf hashing: keccak256(utf8(recipient) + ascii(amount zero-padded to 32 digits))
2. Leaves are sorted by hash before the first level, so payout order never
   changes the root.
3. Parent hashing: keccak256(min(a, b) + max(a, b)) (sorted pairs).
4. Odd node at a level: promoted unchanged to the next level, never paired
   with itself.
5. Single leaf: root = leaf hash.
6. Empty leaf set: rejected.

Usage:
    commitment = commit_battle_result(result)
    proof = commitment.tree.get_proof(commitment.leaves[1].hash)
    assert verify_proof(commitment.root, commitment.leaves[1].hash, proof)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from Crypto.Hash import keccak

from .exceptions import InvalidBattleResultError, LeafNotFoundError
from .models import AMOUNT_WIDTH, MAX_AMOUNT, BattleResult, MerkleLeaf

logger = logging.getLogger(__name__)

DIGEST_SIZE = 32


# ============================================================================
# Hashing
# ============================================================================


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def encode_leaf(recipient: str, amount: int) -> bytes:
    """Byte encoding of a payout leaf: recipient bytes then the padded amount."""
    if not 0 <= amount <= MAX_AMOUNT:
        raise ValueError(
            f"Payout amount must be between 0 and {MAX_AMOUNT} ({AMOUNT_WIDTH} digits), got {amount}"
        )
    return recipient.encode("utf-8") + str(amount).zfill(AMOUNT_WIDTH).encode("ascii")


def hash_leaf(recipient: str, amount: int) -> bytes:
    return keccak256(encode_leaf(recipient, amount))


def hash_pair(a: bytes, b: bytes) -> bytes:
    if b < a:
        a, b = b, a
    return keccak256(a + b)


def to_digest(value: bytes | str) -> bytes:
    """Accept a raw digest or its hex form (optionally 0x-prefixed)."""
    if isinstance(value, bytes):
        digest = value
    else:
        text = value[2:] if value.startswith(("0x", "0X")) else value
        digest = bytes.fromhex(text)
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"Expected a {DIGEST_SIZE}-byte digest, got {len(digest)} bytes")
    return digest


# ============================================================================
# Tree
# ============================================================================


class MerkleTree:
    """Binary hash tree over a multiset of leaf hashes."""

    def __init__(self, leaf_hashes: Sequence[bytes]):
        if not leaf_hashes:
            raise InvalidBattleResultError("Cannot build a Merkle tree with no leaves")

        level = sorted(to_digest(h) for h in leaf_hashes)
        self.levels: list[list[bytes]] = [level]

        while len(level) > 1:
            parents = [hash_pair(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
            if len(level) % 2 == 1:
                parents.append(level[-1])
            self.levels.append(parents)
            level = parents

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    @property
    def root_hex(self) -> str:
        return self.root.hex()

    @property
    def leaf_hashes(self) -> list[bytes]:
        return list(self.levels[0])

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    def __len__(self) -> int:
        return len(self.levels[0])

    def __contains__(self, leaf_hash: object) -> bool:
        return isinstance(leaf_hash, bytes) and leaf_hash in self.levels[0]

    def get_proof(self, leaf_hash: bytes | str) -> list[bytes]:
        """Sibling hashes from ``leaf_hash`` up to the root.

        Levels where the node was promoted without a sibling add nothing.

        Raises:
            LeafNotFoundError: If the hash is not one of the tree's leaves.
        """
        target = to_digest(leaf_hash)
        try:
            index = self.levels[0].index(target)
        except ValueError:
            raise LeafNotFoundError(f"Leaf {target.hex()} is not in the tree") from None

        proof: list[bytes] = []
        for level in self.levels[:-1]:
            sibling = index ^ 1
            if sibling < len(level):
                proof.append(level[sibling])
            index //= 2
        return proof

    def get_hex_proof(self, leaf_hash: bytes | str) -> list[str]:
        return [node.hex() for node in self.get_proof(leaf_hash)]


def get_proof(tree: MerkleTree, leaf_hash: bytes | str) -> list[bytes]:
    return tree.get_proof(leaf_hash)


def verify_proof(
    root: bytes | str,
    leaf_hash: bytes | str,
    proof: Sequence[bytes | str],
) -> bool:
    """Recompute the root from a leaf and its proof and compare."""
    computed = to_digest(leaf_hash)
    for node in proof:
        computed = hash_pair(computed, to_digest(node))
    return computed == to_digest(root)


# ============================================================================
# Battle commitments
# ============================================================================


@dataclass(frozen=True)
class MerkleCommitment:
    """Tree, hex root, and leaf table for one battle result."""

    tree: MerkleTree
    root: str
    leaves: list[MerkleLeaf]

    def find_leaf(self, recipient: str, amount: int) -> MerkleLeaf:
        for leaf in self.leaves:
            if leaf.recipient == recipient and leaf.amount == amount:
                return leaf
        raise LeafNotFoundError(f"No payout of {amount} to {recipient} in this battle result")


def build_leaves(result: BattleResult) -> list[MerkleLeaf]:
    return [
        MerkleLeaf(
            recipient=payout.recipient,
            amount=payout.amount,
            hash=hash_leaf(payout.recipient, payout.amount),
        )
        for payout in result.payout_set()
    ]


def commit_battle_result(result: BattleResult) -> MerkleCommitment:
    """Build the Merkle tree over the winner entry and all betting payouts.

    Raises:
        InvalidBattleResultError: If the result has no winner.
    """
    if not result.winner:
        raise InvalidBattleResultError(
            f"Battle {result.battle_id} has no winner to commit to",
            battle_id=result.battle_id,
        )

    leaves = build_leaves(result)
    tree = MerkleTree([leaf.hash for leaf in leaves])

    logger.debug(
        f"Committed battle {result.battle_id}: {len(leaves)} leaves, "
        f"depth {tree.depth}, root {tree.root_hex}"
    )
    return MerkleCommitment(tree=tree, root=tree.root_hex, leaves=leaves)
