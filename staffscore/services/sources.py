import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from staffscore.core.exceptions import SnapshotCollectionError
from staffscore.models.attendance import AttendanceLog
from staffscore.models.employee import Employee
from staffscore.models.shift import Shift, ShiftAssignment
from staffscore.models.staff_audit import StaffAudit
from staffscore.models.staff_event import StaffEvent
from staffscore.models.task import Task, TaskCompletion
from staffscore.models.training import TestSubmission
from staffscore.services.period import Period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeRecord:
    id: int
    company_id: int
    location_id: Optional[int]


@dataclass(frozen=True)
class ShiftSlot:
    """One approved assignment of an employee to a shift."""
    shift_id: int
    staff_id: int
    shift_date: date


@dataclass(frozen=True)
class AttendanceRecord:
    staff_id: int
    shift_id: Optional[int]
    check_in_at: datetime
    is_late: bool
    late_minutes: Optional[int]


@dataclass(frozen=True)
class TaskRecord:
    id: int
    assigned_to: int
    status: Optional[str]
    completed_late: Optional[bool]


@dataclass(frozen=True)
class CompletionRecord:
    task_id: int
    completed_by: int
    occurrence_date: date
    completed_late: Optional[bool]


@dataclass(frozen=True)
class ScoreRecord:
    employee_id: int
    score: Optional[float]


@dataclass(frozen=True)
class WarningRecord:
    staff_id: int
    event_date: date
    severity: Optional[str]


@dataclass
class CompanySources:
    shifts: List[ShiftSlot] = field(default_factory=list)
    attendance: List[AttendanceRecord] = field(default_factory=list)
    tasks: List[TaskRecord] = field(default_factory=list)
    completions: List[CompletionRecord] = field(default_factory=list)
    tests: List[ScoreRecord] = field(default_factory=list)
    reviews: List[ScoreRecord] = field(default_factory=list)
    warnings: List[WarningRecord] = field(default_factory=list)


def _day_bounds(period: Period):
    # [start 00:00, day after end 00:00)
    return (
        datetime.combine(period.start_date, time.min),
        datetime.combine(period.end_date + timedelta(days=1), time.min),
    )


async def load_active_employees(db: AsyncSession) -> List[EmployeeRecord]:
    result = await db.execute(
        select(Employee.id, Employee.company_id, Employee.location_id)
        .where(Employee.status == "active")
        .order_by(Employee.company_id, Employee.id)
    )
    return [EmployeeRecord(row.id, row.company_id, row.location_id) for row in result.all()]


async def load_approved_shifts(db: AsyncSession, company_id: int, period: Period) -> List[ShiftSlot]:
    result = await db.execute(
        select(Shift.id, ShiftAssignment.staff_id, Shift.shift_date)
        .join(ShiftAssignment, ShiftAssignment.shift_id == Shift.id)
        .where(Shift.company_id == company_id)
        .where(ShiftAssignment.approval_status == "approved")
        .where(Shift.shift_date >= period.start_date)
        .where(Shift.shift_date <= period.end_date)
        .order_by(Shift.shift_date, Shift.start_time, Shift.id)
    )
    return [ShiftSlot(row.id, row.staff_id, row.shift_date) for row in result.all()]


async def load_attendance(db: AsyncSession, company_id: int, period: Period) -> List[AttendanceRecord]:
    start, end = _day_bounds(period)
    result = await db.execute(
        select(AttendanceLog)
        .where(AttendanceLog.company_id == company_id)
        .where(AttendanceLog.check_in_at >= start)
        .where(AttendanceLog.check_in_at < end)
        .order_by(AttendanceLog.check_in_at, AttendanceLog.id)
    )
    return [
        AttendanceRecord(
            staff_id=log.staff_id,
            shift_id=log.shift_id,
            check_in_at=log.check_in_at,
            is_late=bool(log.is_late),
            late_minutes=log.late_minutes,
        )
        for log in result.scalars().all()
    ]


async def load_tasks(db: AsyncSession, company_id: int, period: Period) -> List[TaskRecord]:
    start, end = _day_bounds(period)
    result = await db.execute(
        select(Task.id, Task.assigned_to, Task.status, Task.completed_late)
        .where(Task.company_id == company_id)
        .where(Task.assigned_to.isnot(None))
        .where(Task.created_at >= start)
        .where(Task.created_at < end)
        .order_by(Task.id)
    )
    return [TaskRecord(row.id, row.assigned_to, row.status, row.completed_late) for row in result.all()]


async def load_task_completions(db: AsyncSession, company_id: int, period: Period) -> List[CompletionRecord]:
    result = await db.execute(
        select(
            TaskCompletion.task_id,
            TaskCompletion.completed_by_employee_id,
            TaskCompletion.occurrence_date,
            TaskCompletion.completed_late,
        )
        .where(TaskCompletion.company_id == company_id)
        .where(TaskCompletion.completed_by_employee_id.isnot(None))
        .where(TaskCompletion.occurrence_date >= period.start_date)
        .where(TaskCompletion.occurrence_date <= period.end_date)
        .order_by(TaskCompletion.id)
    )
    return [
        CompletionRecord(row.task_id, row.completed_by_employee_id, row.occurrence_date, row.completed_late)
        for row in result.all()
    ]


async def load_test_submissions(db: AsyncSession, company_id: int, period: Period) -> List[ScoreRecord]:
    start, end = _day_bounds(period)
    result = await db.execute(
        select(TestSubmission.employee_id, TestSubmission.score)
        .where(TestSubmission.company_id == company_id)
        .where(TestSubmission.employee_id.isnot(None))
        .where(TestSubmission.completed_at >= start)
        .where(TestSubmission.completed_at < end)
        .order_by(TestSubmission.id)
    )
    return [ScoreRecord(row.employee_id, row.score) for row in result.all()]


async def load_reviews(db: AsyncSession, company_id: int, period: Period) -> List[ScoreRecord]:
    result = await db.execute(
        select(StaffAudit.employee_id, StaffAudit.score)
        .where(StaffAudit.company_id == company_id)
        .where(StaffAudit.employee_id.isnot(None))
        .where(StaffAudit.audit_date >= period.start_date)
        .where(StaffAudit.audit_date <= period.end_date)
        .order_by(StaffAudit.id)
    )
    return [ScoreRecord(row.employee_id, row.score) for row in result.all()]


async def load_warnings(db: AsyncSession, company_id: int, period: Period, window_days: int) -> List[WarningRecord]:
    """Warnings in the trailing window [end - window_days, end], which may reach into earlier months."""
    window_start = period.end_date - timedelta(days=window_days)
    result = await db.execute(
        select(StaffEvent.staff_id, StaffEvent.event_date, StaffEvent.event_metadata)
        .where(StaffEvent.company_id == company_id)
        .where(StaffEvent.event_type == "warning")
        .where(StaffEvent.event_date >= window_start)
        .where(StaffEvent.event_date <= period.end_date)
        .order_by(StaffEvent.id)
    )
    warnings = []
    for row in result.all():
        metadata = row.event_metadata if isinstance(row.event_metadata, dict) else {}
        warnings.append(WarningRecord(row.staff_id, row.event_date, metadata.get("severity")))
    return warnings


async def _read(
    session_factory: async_sessionmaker,
    company_id: int,
    source: str,
    loader: Callable[..., Awaitable[Any]],
    *args,
):
    # An AsyncSession can't run queries concurrently, so each source gets its own.
    try:
        async with session_factory() as db:
            return await loader(db, company_id, *args)
    except SQLAlchemyError as e:
        logger.exception("Failed to load %s for company %s", source, company_id)
        raise SnapshotCollectionError(company_id, source, str(e)) from e


async def load_company_sources(
    session_factory: async_sessionmaker,
    company_id: int,
    period: Period,
    warning_window_days: int,
) -> CompanySources:
    """Run every source read for one company concurrently.

    If any read fails, or the company is cancelled, the reads still in flight are cancelled
    and awaited before the error propagates, so none of them outlives the company.
    """
    reads: Dict[str, Awaitable[Any]] = {
        "shifts": _read(session_factory, company_id, "shifts", load_approved_shifts, period),
        "attendance": _read(session_factory, company_id, "attendance", load_attendance, period),
        "tasks": _read(session_factory, company_id, "tasks", load_tasks, period),
        "completions": _read(session_factory, company_id, "task completions", load_task_completions, period),
        "tests": _read(session_factory, company_id, "test submissions", load_test_submissions, period),
        "reviews": _read(session_factory, company_id, "reviews", load_reviews, period),
        "warnings": _read(session_factory, company_id, "warnings", load_warnings, period, warning_window_days),
    }
    tasks = [asyncio.create_task(read) for read in reads.values()]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return CompanySources(**dict(zip(reads.keys(), results)))
