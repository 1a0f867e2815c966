"""Battle settlement: fetch -> rank -> payouts -> Merkle root -> persist."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from .exceptions import InvalidBattleResultError, NoParticipantsError
from .interfaces import ContentStore, WalletDataProvider
from .merkle import MerkleCommitment, commit_battle_result
from .models import (
    MAX_AMOUNT,
    BattleResult,
    Bet,
    ParticipantSnapshot,
    RankingResult,
    SettlementOutcome,
    SettlementRecord,
    SnapshotFetch,
)
from .payouts import calculate_betting_payouts, total_pool
from .ranking import rank_participants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComputedSettlement:
    """Pure settlement result before persistence."""

    ranking: RankingResult
    result: BattleResult
    commitment: MerkleCommitment


def compute_settlement(
    battle_id: str,
    snapshots: Sequence[ParticipantSnapshot],
    bets: Sequence[Bet],
    prize_pool: int,
) -> ComputedSettlement:
    """Rank participants, pay correct bettors, and commit to the payouts.

    No I/O; the same inputs always give the same root.
    """
    if prize_pool < 0:
        raise ValueError(f"Prize pool must be non-negative, got {prize_pool}")
    if prize_pool > MAX_AMOUNT or total_pool(bets) > MAX_AMOUNT:
        raise InvalidBattleResultError(
            f"Battle {battle_id} pool exceeds the maximum payout amount {MAX_AMOUNT}",
            battle_id=battle_id,
        )

    if not snapshots:
        raise NoParticipantsError(
            f"Battle {battle_id} has no participant snapshots to rank",
            battle_id=battle_id,
        )

    ranking = rank_participants(snapshots)
    result = BattleResult(
        battle_id=battle_id,
        winner=ranking.winner,
        winner_amount=prize_pool,
        betting_payouts=calculate_betting_payouts(bets, ranking.winner),
    )
    commitment = commit_battle_result(result)
    return ComputedSettlement(ranking=ranking, result=result, commitment=commitment)


class SettlementOrchestrator:
    """Runs one battle settlement against the wallet data and storage services."""

    def __init__(
        self,
        wallet_data: WalletDataProvider,
        content_store: ContentStore,
        max_concurrent_fetches: int = 8,
    ):
        self.wallet_data = wallet_data
        self.content_store = content_store
        self.max_concurrent_fetches = max_concurrent_fetches

    async def fetch_snapshots(self, participants: Sequence[str]) -> list[SnapshotFetch]:
        """Fetch every participant concurrently; one outcome per unique address."""
        unique = list(dict.fromkeys(participants))
        if len(unique) != len(participants):
            logger.warning(
                f"Ignoring {len(participants) - len(unique)} duplicate participant addresses"
            )

        semaphore = asyncio.Semaphore(self.max_concurrent_fetches)

        async def fetch_one(address: str) -> ParticipantSnapshot | None:
            async with semaphore:
                return await self.wallet_data.fetch_snapshot(address)

        results = await asyncio.gather(
            *(fetch_one(address) for address in unique),
            return_exceptions=True,
        )

        fetches: list[SnapshotFetch] = []
        for address, result in zip(unique, results):
            if isinstance(result, Exception):
                logger.warning(f"Snapshot fetch failed for {address}: {result}")
                fetches.append(
                    SnapshotFetch(participant=address, status="failed", error=str(result))
                )
            elif isinstance(result, BaseException):
                raise result
            elif result is None:
                logger.info(f"No snapshot available for {address}")
                fetches.append(SnapshotFetch(participant=address, status="absent"))
            else:
                fetches.append(SnapshotFetch(participant=address, status="ok", snapshot=result))

        return fetches

    async def settle(
        self,
        battle_id: str,
        participants: Sequence[str],
        bets: Sequence[Bet],
        prize_pool: int,
    ) -> SettlementOutcome:
        """Settle a battle and persist the settlement record.

        Participants whose snapshot is absent or fails to load are dropped.
        Storage errors propagate to the caller.

        Raises:
            NoParticipantsError: If no participant produced a snapshot.
        """
        logger.info(
            f"Settling battle {battle_id}: {len(participants)} participants, "
            f"{len(bets)} bets, prize pool {prize_pool}"
        )

        start_time = datetime.now(timezone.utc)
        fetches = await self.fetch_snapshots(participants)
        end_time = datetime.now(timezone.utc)

        snapshots = [f.snapshot for f in fetches if f.snapshot is not None]
        dropped = [f for f in fetches if f.status != "ok"]
        if dropped:
            logger.warning(
                f"Battle {battle_id}: dropped {len(dropped)} of {len(fetches)} participants"
            )

        computed = compute_settlement(battle_id, snapshots, bets, prize_pool)

        record = SettlementRecord(
            battle_id=battle_id,
            start_time=start_time,
            end_time=end_time,
            players=list(participants),
            snapshots=computed.ranking.snapshots,
            winner=computed.result.winner,
            winner_amount=computed.result.winner_amount,
            betting_payouts=computed.result.betting_payouts,
            merkle_root=computed.commitment.root,
            dropped=dropped,
        )

        content_handle = await self.content_store.put(record.to_json_bytes())
        logger.info(
            f"Battle {battle_id} settled: winner {record.winner}, "
            f"root {record.merkle_root}, record {content_handle}"
        )

        return SettlementOutcome(
            merkle_root=record.merkle_root,
            content_handle=content_handle,
            record=record,
        )

    async def load_record(self, content_handle: str) -> SettlementRecord:
        data = await self.content_store.get(content_handle)
        return SettlementRecord.model_validate_json(data)
