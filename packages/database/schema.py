# packages/database/schema.py

from typing import List, Set, Tuple

from sqlalchemy import Table, inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.ext.asyncio.engine import AsyncEngine

# Arbitrary key for pg_advisory_xact_lock; shared by every migrating process
MIGRATION_LOCK_KEY = 814_223_001

# (engine url, table name) pairs already migrated by this process
_migrated: Set[Tuple[str, str]] = set()


async def ensure_table(engine: AsyncEngine, table: Table) -> None:
    """CREATE TABLE IF NOT EXISTS for a single mapped table."""
    async with engine.begin() as conn:
        await conn.run_sync(table.metadata.create_all, tables=[table], checkfirst=True)


def _missing_columns(sync_conn, table: Table) -> List:
    existing = {c["name"] for c in inspect(sync_conn).get_columns(table.name)}
    return [c for c in table.columns if c.name not in existing]


async def _lock(conn: AsyncConnection) -> None:
    # Serializes concurrent migrators; released when the transaction ends
    if conn.dialect.name == "postgresql":
        await conn.execute(
            text("SELECT pg_advisory_xact_lock(:key)"), {"key": MIGRATION_LOCK_KEY}
        )


async def update_table_structure(engine: AsyncEngine, table: Table) -> List[str]:
    """
    Additive migration: adds every column defined on the model that the live
    table lacks. Never drops or alters existing columns.
    Runs at most once per process per (database, table).
    Returns the names of the columns that were added.
    """
    guard_key = (engine.url.render_as_string(hide_password=True), table.name)
    if guard_key in _migrated:
        return []

    added = []
    async with engine.begin() as conn:
        await _lock(conn)
        missing = await conn.run_sync(_missing_columns, table)

        for column in missing:
            col_type = column.type.compile(dialect=conn.dialect)
            await conn.execute(
                text(f'ALTER TABLE {table.name} ADD COLUMN "{column.name}" {col_type}')
            )
            added.append(column.name)

    _migrated.add(guard_key)
    return added
