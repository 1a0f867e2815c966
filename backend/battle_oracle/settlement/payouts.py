"""Proportional payouts for bettors who picked the winner.

The whole betting pool (stakes on every participant) is split among the
correct bets in proportion to their stake:

    payout = floor(bet.amount * total_pool / total_correct)

Integer arithmetic keeps every payout exact; the truncated remainder ("dust")
is left unallocated, so ``sum(payouts) <= total_pool`` always holds. When no
bet picked the winner nothing is paid out to bettors.
"""

import logging
from collections.abc import Sequence

from .models import Bet, Payout

logger = logging.getLogger(__name__)


def total_pool(bets: Sequence[Bet]) -> int:
    return sum(bet.amount for bet in bets)


def calculate_betting_payouts(bets: Sequence[Bet], winner: str) -> list[Payout]:
    """Compute payouts for bets that predicted ``winner``, in input order."""
    correct_bets = [bet for bet in bets if bet.predicted_winner == winner]

    if not correct_bets:
        logger.info(f"No bets predicted winner {winner}; bettor pool left unallocated")
        return []

    total_correct = sum(bet.amount for bet in correct_bets)
    pool = total_pool(bets)

    payouts = [
        Payout(recipient=bet.bettor, amount=bet.amount * pool // total_correct)
        for bet in correct_bets
    ]

    dust = pool - sum(p.amount for p in payouts)
    logger.info(
        f"Computed {len(payouts)} payouts from pool {pool} "
        f"({total_correct} staked on winner, {dust} unallocated)"
    )
    return payouts
