"""Pure scoring functions for pool entries.

These functions are stateless and have no database or external dependencies,
making them easy to test in isolation. The game runner feeds them entries
loaded from the repository and persists what they return.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from fpl_runner.config import DEFAULT_GOAL_TARGET
from fpl_runner.services.fpl_client import PlayerStat

# =============================================================================
# Domain types
# =============================================================================


class EntryStatus(StrEnum):
    """League status of an entry (mirrors the entry_status database enum)."""

    ACTIVE = "ACTIVE"
    BUST = "BUST"
    WINNER = "WINNER"  # set elsewhere, never by the scoring pass
    SHORT = "SHORT"


@dataclass(slots=True)
class Rules:
    """Pool rules relevant to scoring."""

    own_goals: bool = False  # rank by net goals instead of goals
    goal_target: int = DEFAULT_GOAL_TARGET


@dataclass(slots=True)
class Pool:
    id: str
    rules: Rules


@dataclass(slots=True)
class Profile:
    id: str
    first_name: str | None = None
    last_name: str | None = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.id


@dataclass(slots=True)
class Entry:
    """A participant's picks in one pool plus the derived statistics."""

    id: str
    footballer_ids: list[int] = field(default_factory=list)
    pool: Pool | None = None
    profile: Profile | None = None
    goals: int = 0
    own_goals: int = 0
    net_goals: int = 0
    expected_goals: float = 0.0
    all_scored: bool = True
    status: EntryStatus = EntryStatus.ACTIVE
    rank: int | None = None

    def apply(self, stats: "EntryStatistics") -> None:
        """Copy freshly computed statistics onto the entry."""
        self.goals = stats.goals
        self.own_goals = stats.own_goals
        self.net_goals = stats.net_goals
        self.expected_goals = stats.expected_goals
        self.all_scored = stats.all_scored
        self.status = stats.status


@dataclass(slots=True, frozen=True)
class EntryStatistics:
    """The statistics fields written back for an entry."""

    goals: int
    own_goals: int
    net_goals: int
    expected_goals: float
    all_scored: bool
    status: EntryStatus


# =============================================================================
# Aggregation
# =============================================================================


def index_player_stats(players: Iterable[PlayerStat]) -> dict[int, PlayerStat]:
    """Key player stats by player id for constant-time lookup."""
    return {player.id: player for player in players}


def filter_relevant_players(
    players: Iterable[PlayerStat], footballer_ids: Iterable[int]
) -> list[PlayerStat]:
    """Keep only stats for players that exist as footballers in the store."""
    known = set(footballer_ids)
    return [player for player in players if player.id in known]


def round_half_up(value: float, places: int = 2) -> float:
    """Round the exact binary value, ties away from zero (0.125 -> 0.13)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def classify_status(
    goals: int, all_scored: bool, goal_target: int = DEFAULT_GOAL_TARGET
) -> EntryStatus:
    """Classify an entry. Bust takes priority over everything else.

    Args:
        goals: Total goals scored by the entry's matched players
        all_scored: Whether every matched player has scored
        goal_target: Goals above this value bust the entry

    Returns:
        BUST, ACTIVE or SHORT (WINNER is never produced here)
    """
    if goals > goal_target:
        return EntryStatus.BUST
    if all_scored:
        return EntryStatus.ACTIVE
    return EntryStatus.SHORT


def compute_entry_statistics(
    footballer_ids: Iterable[int],
    stats_by_id: Mapping[int, PlayerStat],
    goal_target: int = DEFAULT_GOAL_TARGET,
) -> EntryStatistics:
    """Aggregate player stats onto one entry.

    A footballer without a matching stat contributes nothing and does not
    affect all_scored. Only a matched player with zero goals makes all_scored
    false, so an entry with no matches at all is ACTIVE.

    Args:
        footballer_ids: Ids of the entry's picks
        stats_by_id: Relevant player stats keyed by id (see index_player_stats)
        goal_target: Bust threshold passed to classify_status

    Returns:
        EntryStatistics with expected_goals rounded to 2 decimal places
    """
    goals = 0
    own_goals = 0
    expected_goals = 0.0
    all_scored = True

    for footballer_id in footballer_ids:
        player = stats_by_id.get(footballer_id)
        if player is None:
            continue

        goals += player.goals_scored
        own_goals += player.own_goals
        expected_goals += player.expected_goals
        if player.goals_scored == 0:
            all_scored = False

    return EntryStatistics(
        goals=goals,
        own_goals=own_goals,
        net_goals=goals - own_goals,
        expected_goals=round_half_up(expected_goals),
        all_scored=all_scored,
        status=classify_status(goals, all_scored, goal_target),
    )


# =============================================================================
# Ranking
# =============================================================================


def group_entries_by_pool(entries: Iterable[Entry]) -> dict[str, list[Entry]]:
    """Group entries by pool id. Entries without a pool are left out."""
    pools: dict[str, list[Entry]] = {}
    for entry in entries:
        if entry.pool is None:
            continue
        pools.setdefault(entry.pool.id, []).append(entry)
    return pools


def rank_pool_entries(entries: list[Entry]) -> list[tuple[Entry, int]]:
    """Order one pool's entries and assign 1-based ranks.

    All entries must belong to the same pool; its own_goals rule is read from
    the first one. Entries are ordered by net goals (own_goals rule) or goals,
    highest first, with ties broken by ascending entry id.

    Returns:
        (entry, rank) pairs in rank order, ranks 1..N
    """
    if not entries:
        return []

    first_pool = entries[0].pool
    use_net_goals = first_pool is not None and first_pool.rules.own_goals

    def sort_key(entry: Entry) -> tuple[int, str]:
        score = entry.net_goals if use_net_goals else entry.goals
        return (-score, entry.id)

    ordered = sorted(entries, key=sort_key)
    return [(entry, index + 1) for index, entry in enumerate(ordered)]
