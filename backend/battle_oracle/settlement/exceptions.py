"""Exceptions raised by the settlement core."""


class SettlementError(Exception):
    """Base exception for settlement failures."""

    def __init__(self, message: str, battle_id: str | None = None):
        super().__init__(message)
        self.battle_id = battle_id


class NoParticipantsError(SettlementError):
    """Ranking attempted with no participant snapshots."""

    pass


class InvalidBattleResultError(SettlementError):
    """Battle result cannot be committed (no winner leaf)."""

    pass


class LeafNotFoundError(SettlementError):
    """Requested payout leaf is not part of the tree."""

    pass
