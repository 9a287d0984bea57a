#!/usr/bin/env python
"""
Apply the pool game schema and check the runner can use it.

Usage:
    python -m scripts.migrate

Pending files from migrations/ are applied in name order, each in its own
transaction. Afterwards the tables and enum the runner reads and writes must
exist, otherwise the script exits non-zero.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

import asyncpg
from dotenv import load_dotenv

# Load local environment
load_dotenv(".env.local")
load_dotenv(".env")

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"

REQUIRED_TABLES = frozenset(
    {"profile", "rules", "pool", "footballer", "entry", "entry_footballer"}
)
ENTRY_STATUS_LABELS = ("ACTIVE", "BUST", "WINNER", "SHORT")


def pending_migrations(applied: set[str], migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """Migration files not yet recorded in _migrations, in apply order."""
    return [p for p in sorted(migrations_dir.glob("*.sql")) if p.name not in applied]


async def apply_pending(conn: asyncpg.Connection) -> list[str]:
    """Apply every pending migration. Returns the names applied."""
    await conn.execute(
        "CREATE TABLE IF NOT EXISTS _migrations "
        "(name TEXT PRIMARY KEY, applied_at TIMESTAMPTZ DEFAULT NOW())"
    )
    applied = {row["name"] for row in await conn.fetch("SELECT name FROM _migrations")}

    names = []
    for migration_file in pending_migrations(applied):
        logger.info(f"Applying {migration_file.name}")
        async with conn.transaction():
            await conn.execute(migration_file.read_text())
            await conn.execute(
                "INSERT INTO _migrations (name) VALUES ($1)", migration_file.name
            )
        names.append(migration_file.name)
    return names


async def schema_problems(conn: asyncpg.Connection) -> list[str]:
    """Describe anything missing from the schema the runner relies on."""
    problems = []

    rows = await conn.fetch(
        "SELECT tablename FROM pg_tables WHERE schemaname = 'public'"
    )
    missing = sorted(REQUIRED_TABLES - {row["tablename"] for row in rows})
    if missing:
        problems.append(f"missing tables: {', '.join(missing)}")

    labels = await conn.fetch(
        """
        SELECT e.enumlabel
        FROM pg_enum e
        JOIN pg_type t ON t.oid = e.enumtypid
        WHERE t.typname = 'entry_status'
        ORDER BY e.enumsortorder
        """
    )
    found = tuple(row["enumlabel"] for row in labels)
    if found != ENTRY_STATUS_LABELS:
        problems.append(
            f"entry_status enum is {list(found) or 'missing'}, "
            f"expected {list(ENTRY_STATUS_LABELS)}"
        )

    return problems


async def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        logger.error("DATABASE_URL is not set")
        return 1

    conn = await asyncpg.connect(db_url)
    try:
        applied = await apply_pending(conn)
        logger.info(f"Applied {len(applied)} migration(s)")

        problems = await schema_problems(conn)
        for problem in problems:
            logger.error(f"Schema check failed: {problem}")
        return 1 if problems else 0
    finally:
        await conn.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
