import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from staffscore.core.exceptions import SnapshotPersistenceError
from staffscore.models.performance import PerformanceMonthlyScore

logger = logging.getLogger(__name__)

CONFLICT_KEY = ("employee_id", "month")

# Every non-key column is overwritten on conflict, nulls included, so a re-run replaces the row.
REPLACED_COLUMNS = (
    "company_id",
    "effective_score",
    "used_components",
    "attendance_score",
    "punctuality_score",
    "task_score",
    "test_score",
    "review_score",
    "warning_penalty",
    "rank_in_location",
)

# Keeps bound parameters per statement well under SQLite's and asyncpg's limits.
BATCH_SIZE = 50

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _upsert(insert, rows: List[Dict[str, Any]]):
    stmt = insert(PerformanceMonthlyScore).values(rows)
    return stmt.on_conflict_do_update(
        index_elements=list(CONFLICT_KEY),
        set_={column: stmt.excluded[column] for column in REPLACED_COLUMNS},
    )


async def write_snapshot(db: AsyncSession, company_id: int, rows: Sequence[Dict[str, Any]]) -> int:
    """Upsert a company's snapshot rows in one transaction. Returns the number of rows written."""
    if not rows:
        return 0

    dialect_name = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect_name)
    if insert is None:
        logger.error("Snapshot upsert is not supported on %s (company %s)", dialect_name, company_id)
        raise SnapshotPersistenceError(company_id, f"upsert is not supported on {dialect_name}")

    try:
        async with db.begin():
            for i in range(0, len(rows), BATCH_SIZE):
                await db.execute(_upsert(insert, list(rows[i:i + BATCH_SIZE])))
    except SQLAlchemyError as e:
        logger.exception("Snapshot upsert failed for company %s", company_id)
        raise SnapshotPersistenceError(company_id, str(e)) from e
    return len(rows)
