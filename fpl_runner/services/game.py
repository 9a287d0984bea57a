"""Game runner: recompute entry statistics and pool rankings from live FPL data."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import asyncpg
import httpx

from fpl_runner.config import DEFAULT_GOAL_TARGET
from fpl_runner.services.fpl_client import PlayerStat, StatSource
from fpl_runner.services.repository import EntryRepository
from fpl_runner.services.scoring import (
    Entry,
    compute_entry_statistics,
    filter_relevant_players,
    group_entries_by_pool,
    index_player_stats,
    rank_pool_entries,
)

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of a single game run."""

    started_at: datetime
    relevant_players: int = 0
    entries_total: int = 0
    entries_updated: int = 0
    entries_failed: int = 0
    pools_ranked: int = 0
    pools_failed: int = 0
    skipped: bool = False  # True when there were no entries to score


class GameRunner:
    """
    Runs one full scoring pass.

    1. Load known footballer ids
    2. Fetch live player stats and keep those for known footballers
    3. Load every entry with picks, pool, rules and profile
    4. Recompute and persist each entry's statistics
    5. Rank each pool and persist the ranks

    Failures in steps 1-3 abort the run. Steps 4 and 5 write one entry at a
    time; a failed entry or pool is logged and the rest carry on.
    """

    def __init__(
        self,
        repository: EntryRepository,
        stat_source: StatSource,
        goal_target: int = DEFAULT_GOAL_TARGET,
    ):
        self.repository = repository
        self.stat_source = stat_source
        self.goal_target = goal_target

    async def run(self) -> RunResult:
        """Run the game once. Load and fetch errors propagate."""
        result = RunResult(started_at=datetime.now(UTC))
        logger.info(
            f"Running game for all profiles at {result.started_at:%d/%m/%Y, %H:%M}"
        )

        footballer_ids = await self.repository.list_footballer_ids()
        players = await self.stat_source.fetch_player_stats()
        relevant_players = filter_relevant_players(players, footballer_ids)
        result.relevant_players = len(relevant_players)

        entries = await self.repository.list_entries()
        result.entries_total = len(entries)
        if not entries:
            logger.info("No entries found")
            result.skipped = True
            return result

        self._warn_on_goal_target_mismatch(entries)

        result.entries_updated, result.entries_failed = await self.update_entry_statistics(
            entries, relevant_players
        )
        result.pools_ranked, result.pools_failed = await self.update_entry_rankings(entries)

        logger.info(
            "Game run successfully. Entry statistics and rankings updated. "
            f"entries={result.entries_updated}/{result.entries_total} "
            f"pools={result.pools_ranked} "
            f"failed_entries={result.entries_failed} failed_pools={result.pools_failed}"
        )
        return result

    async def run_safely(self) -> RunResult | None:
        """Run the game, logging and swallowing any run-level failure.

        Returns:
            RunResult, or None if the run was aborted
        """
        try:
            return await self.run()
        except (asyncpg.InterfaceError, OSError) as e:
            logger.error(
                f"Database unavailable: {e}. Check the DATABASE_URL environment variable.",
                exc_info=True,
            )
        except asyncpg.PostgresError as e:
            logger.error(f"Database error occurred: {e}", exc_info=True)
        except httpx.HTTPError as e:
            logger.error(f"Fetching player data failed: {e}", exc_info=True)
        except Exception as e:
            logger.error(f"Unexpected error in game run: {e}", exc_info=True)
        return None

    async def update_entry_statistics(
        self, entries: list[Entry], relevant_players: list[PlayerStat]
    ) -> tuple[int, int]:
        """
        Recompute and persist statistics for every entry, one at a time.

        An entry is updated in memory only after its write succeeds.

        Returns:
            Tuple of (updated_count, failed_count)
        """
        stats_by_id = index_player_stats(relevant_players)
        updated = 0
        failed = 0

        for entry in entries:
            try:
                stats = compute_entry_statistics(
                    entry.footballer_ids, stats_by_id, self.goal_target
                )
                await self.repository.update_entry_statistics(entry.id, stats)
                entry.apply(stats)
                updated += 1
                logger.debug(
                    f"Entry {entry.id} ({_owner(entry)}): goals={stats.goals} "
                    f"net={stats.net_goals} xg={stats.expected_goals} status={stats.status}"
                )
            except Exception as e:
                failed += 1
                logger.error(f"Error updating entry {entry.id}: {e}")

        return updated, failed

    async def update_entry_rankings(self, entries: list[Entry]) -> tuple[int, int]:
        """
        Rank entries within each pool and persist the ranks.

        A failure part-way through a pool abandons that pool only.

        Returns:
            Tuple of (ranked_pool_count, failed_pool_count)
        """
        ranked = 0
        failed = 0

        for pool_id, pool_entries in group_entries_by_pool(entries).items():
            try:
                for entry, rank in rank_pool_entries(pool_entries):
                    await self.repository.update_entry_rank(entry.id, rank)
                    entry.rank = rank
                ranked += 1
            except Exception as e:
                failed += 1
                logger.error(f"Error updating rankings for pool {pool_id}: {e}")

        return ranked, failed

    def _warn_on_goal_target_mismatch(self, entries: list[Entry]) -> None:
        """Log pools whose configured goal_target is not the threshold in use."""
        mismatched = {
            entry.pool.id: entry.pool.rules.goal_target
            for entry in entries
            if entry.pool is not None and entry.pool.rules.goal_target != self.goal_target
        }
        for pool_id, pool_target in sorted(mismatched.items()):
            logger.warning(
                f"Pool {pool_id} has goal_target={pool_target} but entries are "
                f"classified against {self.goal_target}"
            )


def _owner(entry: Entry) -> str:
    return entry.profile.display_name if entry.profile else "no profile"
