"""Service layer for the pool game."""

from fpl_runner.services.fpl_client import FplApiClient, PlayerStat, StatSource
from fpl_runner.services.game import GameRunner, RunResult
from fpl_runner.services.repository import EntryRepository

__all__ = [
    "EntryRepository",
    "FplApiClient",
    "GameRunner",
    "PlayerStat",
    "RunResult",
    "StatSource",
]
