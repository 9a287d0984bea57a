"""FPL API client that supplies live player statistics."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

FPL_BASE_URL = "https://fantasy.premierleague.com/api"


def _safe_int(val: Any, default: int = 0) -> int:
    """Safely convert API value to int, handling None and empty strings."""
    if val is None or val == "":
        return default
    try:
        return int(val)
    except (ValueError, TypeError):
        return default


def _safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert API value to float, handling None and empty strings.

    The FPL API serialises expected_goals as a string ("1.23").
    """
    if val is None or val == "":
        return default
    try:
        return float(val)
    except (ValueError, TypeError):
        return default


@dataclass(slots=True, frozen=True)
class PlayerStat:
    """Season-to-date statistics for one FPL element."""

    id: int
    goals_scored: int
    own_goals: int
    expected_goals: float


class StatSource(Protocol):
    """Anything that can supply the current PlayerStat snapshot."""

    async def fetch_player_stats(self) -> list[PlayerStat]: ...


def parse_player_stats(data: dict[str, Any]) -> list[PlayerStat]:
    """Convert a bootstrap-static payload into PlayerStats.

    Elements without a valid id are logged and dropped.
    """
    stats = []
    for element in data.get("elements", []):
        player_id = _safe_int(element.get("id"))
        # player_id=0 means the id was missing or unparseable
        if player_id <= 0:
            logger.warning(f"Skipping bootstrap element with invalid id: {element}")
            continue
        stats.append(
            PlayerStat(
                id=player_id,
                goals_scored=_safe_int(element.get("goals_scored")),
                own_goals=_safe_int(element.get("own_goals")),
                expected_goals=_safe_float(element.get("expected_goals")),
            )
        )
    return stats


class FplApiClient:
    """
    Minimal FPL API client.

    Only the bootstrap-static endpoint is needed: its `elements` array carries
    season totals for every player. Any non-2xx response raises
    httpx.HTTPStatusError; there is no retry, the next scheduled run is the
    retry.
    """

    def __init__(
        self,
        base_url: str = FPL_BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FplApiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager and close client."""
        await self.close()

    async def _get(self, url: str) -> dict[str, Any]:
        """GET a JSON document, raising on non-success status."""
        response = await self._get_client().get(url)
        response.raise_for_status()
        return response.json()

    async def get_bootstrap_static(self) -> dict[str, Any]:
        """Fetch raw bootstrap-static data as dict."""
        return await self._get(f"{self.base_url}/bootstrap-static/")

    async def fetch_player_stats(self) -> list[PlayerStat]:
        """Fetch live statistics for every FPL player."""
        data = await self.get_bootstrap_static()
        stats = parse_player_stats(data)
        logger.debug(f"Fetched stats for {len(stats)} players")
        return stats
