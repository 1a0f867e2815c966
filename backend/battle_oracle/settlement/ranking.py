"""Participant ranking by portfolio performance."""

import logging
from collections.abc import Sequence

from .exceptions import NoParticipantsError
from .models import ParticipantSnapshot, RankingResult

logger = logging.getLogger(__name__)


def rank_participants(snapshots: Sequence[ParticipantSnapshot]) -> RankingResult:
    """Rank snapshots by performance, best first.

    Ties keep their input order. Returns new snapshot copies with ``rank``
    set (1 = winner); the inputs are not modified.

    Raises:
        NoParticipantsError: If no snapshots were provided.
    """
    if not snapshots:
        raise NoParticipantsError("Cannot rank a battle with no participant snapshots")

    # sorted() is stable with reverse=True, so equal performances keep input order
    ordered = sorted(snapshots, key=lambda s: s.performance_pct, reverse=True)
    ranked = [
        snapshot.model_copy(update={"rank": index})
        for index, snapshot in enumerate(ordered, 1)
    ]

    winner = ranked[0].participant
    logger.info(
        f"Ranked {len(ranked)} participants, winner {winner} "
        f"({ranked[0].performance_pct:+.2f}%)"
    )
    return RankingResult(winner=winner, snapshots=ranked)


def calculate_winner(snapshots: Sequence[ParticipantSnapshot]) -> str:
    """Return the address of the best performing participant."""
    return rank_participants(snapshots).winner
