"""Per-player win/loss/draw counters.

The aggregator does not own any storage. Callers hand it a ``StatsStore``
(an in-memory dict here, a database session in ``models.py``) and must call
``record_outcome`` exactly once per finished game; nothing here deduplicates.
"""
import logging
from typing import Dict, List, Literal, Optional, Protocol, Tuple

from pydantic import BaseModel

from .rules import DRAW_KEY, MARKS, is_mark, other_mark

logger = logging.getLogger(__name__)

Counter = Literal["wins", "losses", "draws"]
DrawPolicy = Literal["sentinel", "both"]

DRAW_POLICIES = ("sentinel", "both")


class OutcomeContractError(AssertionError):
    """Raised for an outcome no finished game can produce, e.g. a winner and a draw at once."""


# PUBLIC_INTERFACE
class PlayerStat(BaseModel):
    """Cumulative counters for one stats key ("X", "O" or the draw sentinel)."""
    player_name: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    total_games: int = 0


class StatsStore(Protocol):
    def increment(self, player_name: str, counter: Counter) -> None:
        """Adds one to ``counter`` and to ``total_games`` for ``player_name``, creating the row if needed."""


# PUBLIC_INTERFACE
class InMemoryStatsStore:
    """Dict-backed StatsStore."""

    def __init__(self):
        self._stats: Dict[str, PlayerStat] = {}

    def increment(self, player_name: str, counter: Counter) -> None:
        stat = self._stats.setdefault(player_name, PlayerStat(player_name=player_name))
        setattr(stat, counter, getattr(stat, counter) + 1)
        stat.total_games += 1

    def get(self, player_name: str) -> Optional[PlayerStat]:
        return self._stats.get(player_name)

    def all(self) -> List[PlayerStat]:
        return sorted(self._stats.values(), key=lambda s: s.wins, reverse=True)


# PUBLIC_INTERFACE
def outcome_increments(
    winner: Optional[str], is_draw: bool, draw_policy: DrawPolicy = "sentinel"
) -> List[Tuple[str, Counter]]:
    """Works out which counters a finished game bumps, without touching any store."""
    if winner is not None and is_draw:
        raise OutcomeContractError(f"Game cannot be both won by {winner} and drawn")
    if is_draw:
        if draw_policy == "both":
            return [(mark, "draws") for mark in MARKS]
        if draw_policy == "sentinel":
            return [(DRAW_KEY, "draws")]
        raise ValueError(f"Unknown draw policy: {draw_policy!r}")
    if winner is None:
        raise OutcomeContractError("No winner and no draw: game is not finished")
    if not is_mark(winner):
        raise OutcomeContractError(f"Winner must be X or O, got {winner!r}")
    return [(winner, "wins"), (other_mark(winner), "losses")]


# PUBLIC_INTERFACE
def record_outcome(
    store: StatsStore, winner: Optional[str], is_draw: bool, draw_policy: DrawPolicy = "sentinel"
) -> List[str]:
    """Applies a finished game's outcome to ``store``. Returns the stats keys that changed."""
    increments = outcome_increments(winner, is_draw, draw_policy)
    for player_name, counter in increments:
        store.increment(player_name, counter)
    logger.info("Recorded outcome winner=%s is_draw=%s", winner, is_draw)
    return [player_name for player_name, _ in increments]
