"""Tests for Merkle commitments and payout proofs."""

from itertools import permutations

import pydantic
import pytest

from battle_oracle.settlement import (
    BattleResult,
    InvalidBattleResultError,
    LeafNotFoundError,
    MerkleTree,
    Payout,
    build_payout_proof,
    commit_battle_result,
    hash_leaf,
    verify_payout_proof,
    verify_proof,
)
from battle_oracle.settlement.merkle import encode_leaf, hash_pair, keccak256


def make_result(*payouts: tuple[str, int], winner: str = "W", winner_amount: int = 1000) -> BattleResult:
    return BattleResult(
        battle_id="battle-1",
        winner=winner,
        winner_amount=winner_amount,
        betting_payouts=[Payout(recipient=r, amount=a) for r, a in payouts],
    )


def test_keccak_is_not_sha3() -> None:
    assert keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_leaf_encoding_pads_amount_to_32_digits() -> None:
    encoded = encode_leaf("alice", 150)

    assert encoded == b"alice" + b"0" * 29 + b"150"
    assert hash_leaf("alice", 150) == keccak256(encoded)


def test_leaf_encoding_rejects_negative_amount() -> None:
    with pytest.raises(ValueError):
        encode_leaf("alice", -1)


def test_hash_pair_is_symmetric() -> None:
    a, b = hash_leaf("a", 1), hash_leaf("b", 2)

    assert hash_pair(a, b) == hash_pair(b, a)
    assert hash_pair(a, b) == keccak256(min(a, b) + max(a, b))


def test_single_leaf_is_root() -> None:
    leaf = hash_leaf("W", 1000)

    tree = MerkleTree([leaf])

    assert tree.root == leaf
    assert tree.get_proof(leaf) == []
    assert verify_proof(tree.root, leaf, [])


def test_empty_tree_rejected() -> None:
    with pytest.raises(InvalidBattleResultError):
        MerkleTree([])


def test_odd_node_is_promoted() -> None:
    leaves = sorted([hash_leaf("a", 1), hash_leaf("b", 2), hash_leaf("c", 3)])

    tree = MerkleTree(leaves)

    assert tree.root == hash_pair(hash_pair(leaves[0], leaves[1]), leaves[2])
    assert tree.get_proof(leaves[2]) == [hash_pair(leaves[0], leaves[1])]
    assert tree.depth == 2


def test_root_independent_of_leaf_order() -> None:
    leaves = [hash_leaf(name, amount) for name, amount in [("a", 1), ("b", 2), ("c", 3), ("d", 4)]]

    roots = {MerkleTree(list(order)).root for order in permutations(leaves)}

    assert len(roots) == 1


def test_root_independent_of_payout_order() -> None:
    first = commit_battle_result(make_result(("X", 150), ("Y", 75), ("Z", 5)))
    second = commit_battle_result(make_result(("Z", 5), ("X", 150), ("Y", 75)))

    assert first.root == second.root


@pytest.mark.parametrize("count", [1, 2, 3, 5, 8, 13])
def test_every_leaf_proves_against_root(count: int) -> None:
    result = make_result(*[(f"bettor-{i}", 10 * i + 1) for i in range(count - 1)])
    commitment = commit_battle_result(result)

    assert len(commitment.tree) == count
    for leaf in commitment.leaves:
        proof = commitment.tree.get_proof(leaf.hash)
        assert verify_proof(commitment.root, leaf.hash, proof)


def test_get_proof_is_idempotent() -> None:
    commitment = commit_battle_result(make_result(("X", 150), ("Y", 75)))
    leaf = commitment.leaves[1].hash

    assert commitment.tree.get_proof(leaf) == commitment.tree.get_proof(leaf)


def test_unknown_leaf_raises() -> None:
    commitment = commit_battle_result(make_result(("X", 150)))

    with pytest.raises(LeafNotFoundError):
        commitment.tree.get_proof(hash_leaf("nobody", 1))


def test_tampered_amount_fails_verification() -> None:
    commitment = commit_battle_result(make_result(("X", 150), ("Y", 75)))
    proof = commitment.tree.get_proof(hash_leaf("X", 150))

    assert not verify_proof(commitment.root, hash_leaf("X", 151), proof)


def test_verify_accepts_hex_with_prefix() -> None:
    commitment = commit_battle_result(make_result(("X", 150), ("Y", 75)))
    leaf = hash_leaf("Y", 75)
    proof = ["0x" + node.hex() for node in commitment.tree.get_proof(leaf)]

    assert verify_proof("0x" + commitment.root, leaf.hex(), proof)


def test_verify_rejects_malformed_hex() -> None:
    with pytest.raises(ValueError):
        verify_proof("abcd", hash_leaf("X", 1), [])


def test_commit_requires_winner() -> None:
    with pytest.raises(InvalidBattleResultError):
        commit_battle_result(make_result(("X", 150), winner=""))


def test_winner_leaf_is_committed() -> None:
    commitment = commit_battle_result(make_result(("X", 150), winner="A", winner_amount=1000))

    leaf = commitment.find_leaf("A", 1000)
    assert leaf.hash == hash_leaf("A", 1000)
    assert leaf.hash in commitment.tree


def test_payout_proof_round_trip() -> None:
    result = make_result(("X", 150), ("Y", 75), ("Z", 5))
    root = commit_battle_result(result).root

    payout_proof = build_payout_proof(result, "Y", 75)

    assert payout_proof.amount == 75
    assert payout_proof.leaf_hash == hash_leaf("Y", 75).hex()
    assert verify_payout_proof(root, payout_proof)


def test_payout_proof_requires_exact_amount() -> None:
    result = make_result(("X", 150))

    with pytest.raises(LeafNotFoundError):
        build_payout_proof(result, "X", 149)


def test_leaf_encoding_rejects_amount_beyond_width() -> None:
    with pytest.raises(ValueError):
        encode_leaf("x", 10**32)

    assert encode_leaf("x", 10**32 - 1) == b"x" + b"9" * 32


def test_recipient_amount_boundary_is_unambiguous() -> None:
    result = make_result(("x1", 0), winner="w", winner_amount=1)
    commitment = commit_battle_result(result)

    with pytest.raises(ValueError):
        hash_leaf("x", 10**32)
    with pytest.raises(LeafNotFoundError):
        build_payout_proof(result, "x", 10**32)
    assert len({leaf.hash for leaf in commitment.leaves}) == 2


def test_payout_amount_bounded() -> None:
    with pytest.raises(pydantic.ValidationError):
        Payout(recipient="x", amount=10**32)
