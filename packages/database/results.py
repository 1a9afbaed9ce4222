# packages/database/results.py

from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio.engine import AsyncEngine

from packages.database.models import METRIC_COLUMNS, TrainingResult
from packages.database.schema import ensure_table, update_table_structure
from packages.database.session import create_session_factory, get_db_session


class TrainingResultsRepository:
    """Relational system of record for run metrics."""

    def __init__(self, engine: AsyncEngine, logger):
        self.engine = engine
        self.logger = logger
        self.session_factory = create_session_factory(engine)
        self.table = TrainingResult.__table__

    async def prepare(self) -> None:
        """Creates the table if absent, then adds any columns it is missing."""
        await ensure_table(self.engine, self.table)
        added = await update_table_structure(self.engine, self.table)
        if added:
            self.logger.info(f"Added columns to {self.table.name}: {added}")

    async def insert(self, algorithm_name: str, metrics: Dict[str, float]) -> int:
        """Appends one row for this run and returns its id."""
        values = {
            column: metrics[key] for key, column in METRIC_COLUMNS.items() if key in metrics
        }
        row = TrainingResult(algorithm_name=algorithm_name, **values)

        async with get_db_session(self.session_factory) as session:
            session.add(row)
            await session.flush()
            row_id = row.id

        self.logger.info(f"Stored training results for {algorithm_name} (id={row_id})")
        return row_id

    async def fetch(self, algorithm_name: str | None = None) -> List[TrainingResult]:
        stmt = select(TrainingResult).order_by(TrainingResult.id)
        if algorithm_name is not None:
            stmt = stmt.where(TrainingResult.algorithm_name == algorithm_name)

        async with get_db_session(self.session_factory) as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())
