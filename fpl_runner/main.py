"""Background service entry point.

Usage:
    python -m fpl_runner.main
    fpl-runner

Runs the game once at startup and then every hour on the hour until SIGINT
or SIGTERM.
"""

import asyncio
import logging
import signal

from dotenv import load_dotenv

from fpl_runner.config import Settings, get_settings
from fpl_runner.db import Database
from fpl_runner.scheduler import GameScheduler
from fpl_runner.services.fpl_client import FplApiClient
from fpl_runner.services.game import GameRunner
from fpl_runner.services.repository import EntryRepository

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Silence per-request HTTP client logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set stop_event on SIGINT/SIGTERM."""

    def _stop() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _stop)
        except NotImplementedError:
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(_stop))


async def serve(settings: Settings, stop_event: asyncio.Event) -> None:
    """Run the scheduler until stop_event is set, then release resources."""
    db = Database(settings)
    await db.connect()
    fpl_client = FplApiClient(
        base_url=settings.fpl_api_base_url,
        timeout=settings.request_timeout_seconds,
    )
    runner = GameRunner(
        repository=EntryRepository(db),
        stat_source=fpl_client,
        goal_target=settings.goal_target,
    )
    scheduler = GameScheduler(runner, settings)

    try:
        scheduler.start()
        logger.info("FPL Background service started")
        await stop_event.wait()
    finally:
        await scheduler.shutdown()
        await fpl_client.close()
        await db.close()
        logger.info("FPL Background service stopped")


async def main() -> None:
    """Main entry point."""
    load_dotenv(".env.local")
    settings = get_settings()
    configure_logging(settings)

    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)
    await serve(settings, stop_event)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
