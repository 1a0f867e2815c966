"""Tests for proportional betting payouts."""

from battle_oracle.settlement import Bet, calculate_betting_payouts


def bet(bettor: str, predicted_winner: str, amount: int) -> Bet:
    return Bet(bettor=bettor, predicted_winner=predicted_winner, amount=amount)


def test_single_correct_bettor_takes_whole_pool() -> None:
    bets = [bet("X", "B", 100), bet("Y", "A", 50)]

    payouts = calculate_betting_payouts(bets, "B")

    assert [(p.recipient, p.amount) for p in payouts] == [("X", 150)]


def test_pool_split_in_proportion_to_stake() -> None:
    bets = [bet("X", "A", 100), bet("Y", "A", 300), bet("Z", "B", 400)]

    payouts = calculate_betting_payouts(bets, "A")

    assert [(p.recipient, p.amount) for p in payouts] == [("X", 200), ("Y", 600)]


def test_no_correct_bettors_pays_nothing() -> None:
    bets = [bet("X", "B", 100), bet("Y", "C", 50)]

    assert calculate_betting_payouts(bets, "A") == []


def test_no_bets_pays_nothing() -> None:
    assert calculate_betting_payouts([], "A") == []


def test_payouts_never_exceed_pool() -> None:
    bets = [bet("X", "A", 1), bet("Y", "A", 1), bet("Z", "A", 1), bet("W", "B", 1)]

    payouts = calculate_betting_payouts(bets, "A")

    # 4 // 3 each, one unit of dust stays unallocated
    assert [p.amount for p in payouts] == [1, 1, 1]
    assert sum(p.amount for p in payouts) <= 4


def test_payouts_keep_bet_order() -> None:
    bets = [bet("late", "A", 10), bet("other", "B", 10), bet("early", "A", 30)]

    payouts = calculate_betting_payouts(bets, "A")

    assert [p.recipient for p in payouts] == ["late", "early"]
    assert [p.amount for p in payouts] == [12, 37]


def test_large_amounts_are_exact() -> None:
    stake = 10**30
    bets = [bet("X", "A", stake), bet("Y", "A", stake), bet("Z", "B", stake)]

    payouts = calculate_betting_payouts(bets, "A")

    assert [p.amount for p in payouts] == [3 * stake // 2, 3 * stake // 2]
