"""Pydantic models for battle settlement.

Attribute names are snake_case; JSON field names follow the camelCase wire
format used by the battle frontend and the stored settlement records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    field_serializer,
    field_validator,
)

# Leaf encoding gives every amount exactly AMOUNT_WIDTH decimal digits.
AMOUNT_WIDTH = 32
MAX_AMOUNT = 10**AMOUNT_WIDTH - 1

Amount = Annotated[int, Field(ge=0, le=MAX_AMOUNT)]
StakeAmount = Annotated[int, Field(gt=0, le=MAX_AMOUNT)]


class TokenHolding(BaseModel):
    """Single token position inside a wallet snapshot."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str
    name: str
    address: str
    balance: float
    value_usd: float | None = Field(default=None, alias="valueUSD")
    price_change_24h: float | None = Field(default=None, alias="priceChange24h")


class ParticipantSnapshot(BaseModel):
    """Observed wallet performance for one battle participant.

    ``rank`` stays 0 until the ranking step assigns it.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    participant: str = Field(min_length=1)
    performance_pct: float = Field(alias="performancePct", allow_inf_nan=False)
    rank: NonNegativeInt = 0
    observed_at: datetime = Field(alias="observedAt")
    total_value: float | None = Field(default=None, alias="totalValue")
    tokens: list[TokenHolding] = Field(default_factory=list)


class Bet(BaseModel):
    """A wager on which participant wins the battle."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bettor: str = Field(min_length=1)
    predicted_winner: str = Field(alias="predictedWinner", min_length=1)
    amount: StakeAmount


class Payout(BaseModel):
    """Amount owed to a recipient, in minor units."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    recipient: str = Field(alias="bettor", min_length=1)
    amount: Amount


class BattleResult(BaseModel):
    """Canonical settlement outcome committed to by the Merkle root."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    battle_id: str = Field(alias="battleId")
    winner: str
    winner_amount: Amount = Field(alias="winnerAmount")
    betting_payouts: list[Payout] = Field(default_factory=list, alias="bettingPayouts")

    def payout_set(self) -> list[Payout]:
        """Winner entry followed by the betting payouts."""
        return [Payout(recipient=self.winner, amount=self.winner_amount), *self.betting_payouts]


class MerkleLeaf(BaseModel):
    """Hashed ``(recipient, amount)`` pair."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    amount: Amount
    hash: bytes

    @field_validator("hash")
    @classmethod
    def check_digest_size(cls, v: bytes) -> bytes:
        if len(v) != 32:
            raise ValueError(f"Leaf hash must be 32 bytes, got {len(v)}")
        return v

    @field_serializer("hash")
    def serialize_hash(self, v: bytes) -> str:
        return v.hex()

    @property
    def hash_hex(self) -> str:
        return self.hash.hex()


class RankingResult(BaseModel):
    """Ranked snapshots plus the rank-1 participant."""

    model_config = ConfigDict(frozen=True)

    winner: str
    snapshots: list[ParticipantSnapshot]


FetchStatus = Literal["ok", "absent", "failed"]


class SnapshotFetch(BaseModel):
    """Outcome of fetching one participant's snapshot."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    participant: str
    status: FetchStatus
    snapshot: ParticipantSnapshot | None = None
    error: str | None = None


class SettlementRecord(BaseModel):
    """Full settlement document persisted to the content store."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    battle_id: str = Field(alias="battleId")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    players: list[str]
    snapshots: list[ParticipantSnapshot]
    winner: str
    winner_amount: Amount = Field(alias="winnerAmount")
    betting_payouts: list[Payout] = Field(default_factory=list, alias="bettingPayouts")
    merkle_root: str = Field(alias="merkleRoot", pattern=r"^[0-9a-f]{64}$")
    dropped: list[SnapshotFetch] = Field(default_factory=list, alias="fetches")

    def battle_result(self) -> BattleResult:
        return BattleResult(
            battle_id=self.battle_id,
            winner=self.winner,
            winner_amount=self.winner_amount,
            betting_payouts=self.betting_payouts,
        )

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True, indent=2).encode("utf-8")


class SettlementOutcome(BaseModel):
    """What a caller gets back from a settlement run."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    merkle_root: str = Field(alias="merkleRoot")
    content_handle: str = Field(alias="contentHandle")
    record: SettlementRecord = Field(exclude=True)


class PayoutProof(BaseModel):
    """Inclusion proof for one payout leaf."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    proof: list[str]
    leaf_hash: str = Field(alias="leafHash")
    amount: Amount
