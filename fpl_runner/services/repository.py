"""Repository for pool entries and the reference data they point at."""

import logging
from typing import Any

from fpl_runner.config import DEFAULT_GOAL_TARGET
from fpl_runner.db import Database
from fpl_runner.services.scoring import (
    Entry,
    EntryStatistics,
    EntryStatus,
    Pool,
    Profile,
    Rules,
)

logger = logging.getLogger(__name__)


class EntryNotFoundError(LookupError):
    """Raised when an update targets an entry that no longer exists."""


def _affected_rows(result: str | None) -> int:
    """Parse asyncpg's command tag ("UPDATE 1") into a row count."""
    if not result:
        return 0
    try:
        return int(result.split()[-1])
    except ValueError:
        return 0


def _entry_from_row(row: Any) -> Entry:
    """Build an Entry (with pool, rules and profile) from a joined row."""
    pool = None
    if row["pool_id"] is not None:
        goal_target = row["rules_goal_target"]
        pool = Pool(
            id=row["pool_id"],
            rules=Rules(
                own_goals=bool(row["rules_own_goals"]),
                goal_target=goal_target if goal_target is not None else DEFAULT_GOAL_TARGET,
            ),
        )

    profile = None
    if row["profile_id"] is not None:
        profile = Profile(
            id=row["profile_id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
        )

    return Entry(
        id=row["id"],
        footballer_ids=list(row["footballer_ids"] or []),
        pool=pool,
        profile=profile,
        goals=row["goals"],
        own_goals=row["own_goals"],
        net_goals=row["net_goals"],
        expected_goals=float(row["expected_goals"] or 0),
        all_scored=row["all_scored"],
        status=EntryStatus(row["status"]),
        rank=row["rank"],
    )


class EntryRepository:
    """Reads and writes the tables behind the pool game."""

    def __init__(self, db: Database):
        self._db = db

    async def list_footballer_ids(self) -> set[int]:
        """Get the ids of every footballer known to the game."""
        async with self._db.connection() as conn:
            rows = await conn.fetch("SELECT id FROM footballer")
            return {row["id"] for row in rows}

    async def list_entries(self) -> list[Entry]:
        """
        Get all entries with their picks, pool, pool rules and profile.

        Picks are aggregated into a sorted id array per entry. Entries are
        returned ordered by id.
        """
        async with self._db.connection() as conn:
            rows = await conn.fetch(
                """
                SELECT
                    e.id,
                    e.goals,
                    e.own_goals,
                    e.net_goals,
                    e.expected_goals,
                    e.all_scored,
                    e.status::text AS status,
                    e.rank,
                    e.pool_id,
                    r.own_goals AS rules_own_goals,
                    r.goal_target AS rules_goal_target,
                    pr.id AS profile_id,
                    pr.first_name,
                    pr.last_name,
                    COALESCE(
                        array_agg(ef.footballer_id ORDER BY ef.footballer_id)
                            FILTER (WHERE ef.footballer_id IS NOT NULL),
                        '{}'
                    ) AS footballer_ids
                FROM entry e
                LEFT JOIN pool p ON p.id = e.pool_id
                LEFT JOIN rules r ON r.id = p.rules_id
                LEFT JOIN profile pr ON pr.id = e.profile_id
                LEFT JOIN entry_footballer ef ON ef.entry_id = e.id
                GROUP BY e.id, r.own_goals, r.goal_target, pr.id
                ORDER BY e.id
                """
            )
            return [_entry_from_row(row) for row in rows]

    async def update_entry_statistics(
        self, entry_id: str, stats: EntryStatistics
    ) -> None:
        """Write the computed statistics fields for one entry."""
        async with self._db.connection() as conn:
            result = await conn.execute(
                """
                UPDATE entry SET
                    goals = $2,
                    own_goals = $3,
                    net_goals = $4,
                    expected_goals = $5,
                    all_scored = $6,
                    status = $7::entry_status,
                    updated_at = NOW()
                WHERE id = $1
                """,
                entry_id,
                stats.goals,
                stats.own_goals,
                stats.net_goals,
                stats.expected_goals,
                stats.all_scored,
                stats.status.value,
            )
        if _affected_rows(result) == 0:
            raise EntryNotFoundError(f"Entry {entry_id} not found")

    async def update_entry_rank(self, entry_id: str, rank: int) -> None:
        """Write the pool rank for one entry."""
        async with self._db.connection() as conn:
            result = await conn.execute(
                "UPDATE entry SET rank = $2, updated_at = NOW() WHERE id = $1",
                entry_id,
                rank,
            )
        if _affected_rows(result) == 0:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
