import itertools
from datetime import date, time

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from staffscore.database import Base
from staffscore.models.attendance import AttendanceLog
from staffscore.models.employee import Employee
from staffscore.models.performance import PerformanceMonthlyScore
from staffscore.models.shift import Shift, ShiftAssignment
from staffscore.models.staff_audit import StaffAudit
from staffscore.models.staff_event import StaffEvent
from staffscore.models.task import Task, TaskCompletion
from staffscore.models.training import TestSubmission as TestSubmissionModel


@pytest.fixture
async def engine(tmp_path):
    # File-backed so the job's concurrent sessions all see the same data
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scores.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


class Seeder:
    """Writes source records for a test, one commit per call."""

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._ids = itertools.count(1000)

    async def add(self, *objects):
        async with self._session_factory() as db:
            db.add_all(objects)
            await db.commit()

    async def employee(self, employee_id, company_id=1, location_id=10, status="active"):
        await self.add(Employee(
            id=employee_id, company_id=company_id, location_id=location_id,
            full_name=f"Employee {employee_id}", status=status,
        ))

    async def shift(self, staff_id, shift_date, company_id=1, approval_status="approved"):
        shift_id = next(self._ids)
        await self.add(
            Shift(id=shift_id, company_id=company_id, shift_date=shift_date, start_time=time(9, 0)),
            ShiftAssignment(shift_id=shift_id, staff_id=staff_id, approval_status=approval_status),
        )
        return shift_id

    async def check_in(self, staff_id, at, shift_id=None, company_id=1, is_late=False, late_minutes=None):
        await self.add(AttendanceLog(
            company_id=company_id, staff_id=staff_id, shift_id=shift_id,
            check_in_at=at, is_late=is_late, late_minutes=late_minutes,
        ))

    async def task(self, assigned_to, created_at, company_id=1, status="completed", completed_late=False):
        task_id = next(self._ids)
        await self.add(Task(
            id=task_id, company_id=company_id, title="Close till", assigned_to=assigned_to,
            status=status, completed_late=completed_late, created_at=created_at,
        ))
        return task_id

    async def completion(self, task_id, employee_id, occurrence_date, company_id=1, completed_late=False):
        await self.add(TaskCompletion(
            company_id=company_id, task_id=task_id, completed_by_employee_id=employee_id,
            occurrence_date=occurrence_date, completed_late=completed_late,
        ))

    async def test_result(self, employee_id, score, completed_at, company_id=1):
        await self.add(TestSubmissionModel(
            company_id=company_id, employee_id=employee_id, score=score,
            passed=score >= 70, completed_at=completed_at,
        ))

    async def review(self, employee_id, score, audit_date, company_id=1):
        await self.add(StaffAudit(company_id=company_id, employee_id=employee_id, score=score, audit_date=audit_date))

    async def warning(self, staff_id, event_date, severity="minor", company_id=1, event_type="warning"):
        await self.add(StaffEvent(
            company_id=company_id, staff_id=staff_id, event_type=event_type,
            event_date=event_date, event_metadata={"severity": severity},
        ))


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def fetch_snapshot(session_factory):
    async def _fetch(month=date(2026, 3, 1)):
        async with session_factory() as db:
            result = await db.execute(
                select(PerformanceMonthlyScore)
                .where(PerformanceMonthlyScore.month == month)
                .order_by(PerformanceMonthlyScore.employee_id)
            )
            return {row.employee_id: row for row in result.scalars().all()}
    return _fetch