import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from staffscore.config import settings
from staffscore.core.exceptions import SnapshotError
from staffscore.services import collectors
from staffscore.services.composer import ComponentScores, compose
from staffscore.services.penalty import DEFAULT_DECAY_DAYS, warning_penalties
from staffscore.services.period import Period, resolve_period
from staffscore.services.ranking import rank_in_location
from staffscore.services.snapshot_writer import write_snapshot
from staffscore.services.sources import (
    CompanySources,
    EmployeeRecord,
    load_active_employees,
    load_company_sources,
)

logger = logging.getLogger(__name__)


@dataclass
class SnapshotRun:
    """Progress of one snapshot run. `upserted` only counts company batches that committed."""
    month: str = ""
    upserted: int = 0
    companies: int = 0
    failed_companies: List[int] = field(default_factory=list)


def build_snapshot_rows(
    employees: Sequence[EmployeeRecord],
    sources: CompanySources,
    period: Period,
) -> List[Dict[str, Any]]:
    """Score, penalise and rank one company's employees. Pure; does no I/O."""
    ids = [employee.id for employee in employees]
    end = period.end_date

    attendance = collectors.attendance_scores(ids, sources.shifts, sources.attendance, end)
    punctuality = collectors.punctuality_scores(ids, sources.shifts, sources.attendance, end)
    tasks = collectors.task_scores(ids, sources.tasks, sources.completions, sources.shifts)
    tests = collectors.test_scores(ids, sources.tests)
    reviews = collectors.review_scores(ids, sources.reviews)
    penalties = warning_penalties(ids, sources.warnings, end, DEFAULT_DECAY_DAYS)

    rows = []
    for employee in employees:
        components = ComponentScores(
            attendance=attendance[employee.id],
            punctuality=punctuality[employee.id],
            task=tasks[employee.id],
            test=tests[employee.id],
            review=reviews[employee.id],
        )
        composite = compose(components, penalties[employee.id])
        rows.append({
            "employee_id": employee.id,
            "company_id": employee.company_id,
            "month": period.start_date,
            "effective_score": composite.effective_score,
            "used_components": composite.used_components,
            "attendance_score": components.attendance,
            "punctuality_score": components.punctuality,
            "task_score": components.task,
            "test_score": components.test,
            "review_score": components.review,
            "warning_penalty": penalties[employee.id],
            "rank_in_location": None,
        })

    # Every score in the company is known here, so locations can be ranked.
    ranks = rank_in_location(
        (employee.id, employee.location_id, row["effective_score"])
        for employee, row in zip(employees, rows)
    )
    for row in rows:
        row["rank_in_location"] = ranks.get(row["employee_id"])
    return rows


async def process_company(
    session_factory: async_sessionmaker,
    company_id: int,
    employees: Sequence[EmployeeRecord],
    period: Period,
) -> int:
    sources = await load_company_sources(session_factory, company_id, period, DEFAULT_DECAY_DAYS)
    rows = build_snapshot_rows(employees, sources, period)
    async with session_factory() as db:
        written = await write_snapshot(db, company_id, rows)
    logger.info("Company %s: upserted %d rows for %s", company_id, written, period.month_key)
    return written


async def run_monthly_snapshot(
    session_factory: async_sessionmaker,
    month: Union[str, date, None] = None,
    *,
    now: Optional[datetime] = None,
    run: Optional[SnapshotRun] = None,
    max_concurrency: Optional[int] = None,
    company_timeout: Optional[float] = None,
) -> SnapshotRun:
    """Snapshot every active employee's score for `month` (default: previous month).

    Companies run concurrently up to `max_concurrency`. A company that fails to load, fails
    to write or exceeds `company_timeout` is logged and skipped; the others still complete.
    Re-running a month replaces its rows, so backfills are the same call with a past month.
    """
    max_concurrency = max_concurrency or settings.SNAPSHOT_MAX_CONCURRENCY
    company_timeout = company_timeout or settings.SNAPSHOT_COMPANY_TIMEOUT_SECONDS

    period = resolve_period(month, now)
    run = run if run is not None else SnapshotRun()
    run.month = period.month_key
    logger.info("Snapshotting monthly scores for %s to %s", period.start_date, period.end_date)

    async with session_factory() as db:
        employees = await load_active_employees(db)

    by_company: Dict[int, List[EmployeeRecord]] = {}
    for employee in employees:
        by_company.setdefault(employee.company_id, []).append(employee)
    run.companies = len(by_company)

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _process(company_id: int, company_employees: List[EmployeeRecord]):
        async with semaphore:
            try:
                written = await asyncio.wait_for(
                    process_company(session_factory, company_id, company_employees, period),
                    timeout=company_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Company %s timed out after %ss for %s; skipped", company_id, company_timeout, period.month_key
                )
                run.failed_companies.append(company_id)
                return
            except SnapshotError as e:
                logger.error("Company %s skipped for %s: %s", company_id, period.month_key, e)
                run.failed_companies.append(company_id)
                return
            run.upserted += written

    tasks = [asyncio.create_task(_process(cid, emps)) for cid, emps in by_company.items()]
    try:
        await asyncio.gather(*tasks)
    except Exception:
        for task in tasks:
            task.cancel()
        raise

    run.failed_companies.sort()
    logger.info(
        "Snapshot for %s done: %d rows upserted across %d companies, %d skipped",
        period.month_key, run.upserted, run.companies, len(run.failed_companies),
    )
    return run
