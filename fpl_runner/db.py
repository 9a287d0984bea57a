"""Database connection management using asyncpg."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from fpl_runner.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """Owns the process-wide connection pool.

    Opened once at startup with connect() and released once at shutdown with
    close(). Collaborators receive the handle explicitly.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> asyncpg.Pool:
        """Initialize the database connection pool."""
        if self._pool is not None:
            return self._pool

        db_url = self._settings.database_url
        if not db_url:
            raise ValueError(
                "Database connection string not configured. "
                "Set the DATABASE_URL environment variable."
            )

        logger.info("Initializing database connection pool")
        self._pool = await asyncpg.create_pool(
            db_url,
            min_size=self._settings.db_pool_min_size,
            max_size=self._settings.db_pool_max_size,
            command_timeout=self._settings.db_command_timeout,
        )
        return self._pool

    async def close(self) -> None:
        """Close the database connection pool."""
        if self._pool is not None:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        """The current connection pool (must be connected first)."""
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        """Get a database connection from the pool."""
        async with self.pool.acquire() as conn:
            yield conn

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
