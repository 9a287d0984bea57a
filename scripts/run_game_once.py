#!/usr/bin/env python
"""
Run a single game pass outside the scheduler.

Useful after a deploy or a manual data fix, without waiting for the next
hourly tick.

Usage:
    python -m scripts.run_game_once
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fpl_runner.config import get_settings
from fpl_runner.db import Database
from fpl_runner.main import configure_logging
from fpl_runner.services.fpl_client import FplApiClient
from fpl_runner.services.game import GameRunner
from fpl_runner.services.repository import EntryRepository

# Load environment
load_dotenv(".env.local")
load_dotenv(".env")

logger = logging.getLogger(__name__)


async def main() -> int:
    settings = get_settings()
    configure_logging(settings)

    async with Database(settings) as db, FplApiClient(
        base_url=settings.fpl_api_base_url,
        timeout=settings.request_timeout_seconds,
    ) as fpl_client:
        runner = GameRunner(
            repository=EntryRepository(db),
            stat_source=fpl_client,
            goal_target=settings.goal_target,
        )
        result = await runner.run_safely()

    if result is None:
        logger.error("Game run aborted, see errors above")
        return 1

    print("\nGame Run Summary")
    print("-" * 40)
    print(f"Relevant players:    {result.relevant_players}")
    print(f"Entries updated:     {result.entries_updated}/{result.entries_total}")
    print(f"Entries failed:      {result.entries_failed}")
    print(f"Pools ranked:        {result.pools_ranked}")
    print(f"Pools failed:        {result.pools_failed}")
    print("-" * 40)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
