"""Hourly scheduling for the game runner."""

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from fpl_runner.config import Settings
from fpl_runner.services.game import RunResult

logger = logging.getLogger(__name__)

GAME_JOB_ID = "run_game"


class SupportsRunSafely(Protocol):
    async def run_safely(self) -> RunResult | None: ...


def scheduler_timezone(name: str) -> ZoneInfo:
    """Resolve the cron timezone, falling back to UTC on unknown names."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Invalid scheduler timezone {name!r}, falling back to UTC")
        return ZoneInfo("UTC")


class GameScheduler:
    """
    Runs the game on a cron schedule plus once at startup.

    Only one run is ever in flight: a tick that fires while the previous run
    is still going is skipped. shutdown() stops new ticks and waits a bounded
    time for the in-flight run before cancelling it.
    """

    def __init__(self, runner: SupportsRunSafely, settings: Settings):
        self.runner = runner
        self.settings = settings
        self.tz = scheduler_timezone(settings.scheduler_timezone)
        self._scheduler = AsyncIOScheduler(timezone=self.tz)
        self._in_flight: asyncio.Task[RunResult | None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether a game run is currently in flight."""
        return self._in_flight is not None and not self._in_flight.done()

    def start(self) -> None:
        """Register the game job and start the scheduler (needs a running loop)."""
        trigger = CronTrigger.from_crontab(self.settings.schedule_cron, timezone=self.tz)
        job_kwargs = {}
        if self.settings.run_on_startup:
            job_kwargs["next_run_time"] = datetime.now(self.tz)

        self._scheduler.add_job(
            self.tick,
            trigger=trigger,
            id=GAME_JOB_ID,
            name="Recompute entry statistics and rankings",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
            replace_existing=True,
            **job_kwargs,
        )
        self._scheduler.start()
        logger.info(
            f"Scheduler started: cron={self.settings.schedule_cron!r} tz={self.tz.key} "
            f"run_on_startup={self.settings.run_on_startup}"
        )

    async def tick(self) -> RunResult | None:
        """Run the game unless a previous run is still in flight."""
        if self.is_running:
            logger.warning("Previous game run still in progress, skipping this tick")
            return None

        self._in_flight = asyncio.create_task(self.runner.run_safely())
        try:
            return await self._in_flight
        finally:
            self._in_flight = None

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop scheduling and wait for any in-flight run to finish."""
        if timeout is None:
            timeout = self.settings.shutdown_timeout_seconds

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

        task = self._in_flight
        if task is None or task.done():
            return

        logger.info(f"Waiting up to {timeout}s for in-flight game run to finish")
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except TimeoutError:
            logger.warning("In-flight game run did not finish in time, cancelling it")
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
