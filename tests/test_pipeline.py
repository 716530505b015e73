import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from staffscore.config import Settings
from staffscore.core.exceptions import SnapshotCollectionError, SnapshotPersistenceError
from staffscore.models.employee import Employee
from staffscore.services import pipeline, snapshot_writer, sources
from staffscore.services.period import month_period
from staffscore.services.pipeline import run_monthly_snapshot

MARCH = "2026-03-01"
MARCH_FIRST = date(2026, 3, 1)
MARCH_END = date(2026, 3, 31)


def _at(day, hour=9):
    return datetime(day.year, day.month, day.day, hour, 0)


def _march_days(n):
    return [MARCH_FIRST + timedelta(days=i) for i in range(n)]


def _values(row):
    return (
        row.id, row.employee_id, row.company_id, row.month, row.effective_score, row.used_components,
        row.attendance_score, row.punctuality_score, row.task_score, row.test_score, row.review_score,
        row.warning_penalty, row.rank_in_location,
    )


async def test_attendance_from_matched_shifts(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    for i, day in enumerate(_march_days(10)):
        shift_id = await seed.shift(1, day)
        if i < 8:
            await seed.check_in(1, _at(day), shift_id=shift_id)

    run = await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    assert run.upserted == 1
    assert row.attendance_score == pytest.approx(80.0)
    assert row.punctuality_score == 100.0
    assert row.used_components == 2
    assert row.effective_score == pytest.approx(90.0)
    assert row.rank_in_location == 1


async def test_employee_without_activity_still_gets_a_null_row(seed, session_factory, fetch_snapshot):
    await seed.employee(1)

    await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    assert row.effective_score is None
    assert row.used_components == 0
    assert row.attendance_score is None
    assert row.punctuality_score is None
    assert row.task_score is None
    assert row.test_score is None
    assert row.review_score is None
    assert row.warning_penalty == 0.0
    assert row.rank_in_location is None


async def test_only_active_employees_and_approved_shifts_count(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    await seed.employee(2, status="inactive")
    await seed.shift(1, date(2026, 3, 4), approval_status="pending")
    await seed.shift(2, date(2026, 3, 4))

    run = await run_monthly_snapshot(session_factory, MARCH)

    rows = await fetch_snapshot()
    assert run.upserted == 1
    assert list(rows) == [1]
    assert rows[1].attendance_score is None


async def test_all_components_and_warning_penalty(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    shift_id = await seed.shift(1, date(2026, 3, 10))
    await seed.check_in(1, _at(date(2026, 3, 10)), shift_id=shift_id, is_late=True, late_minutes=12)
    await seed.task(1, _at(date(2026, 3, 2)))
    await seed.test_result(1, 90.0, _at(date(2026, 3, 20)))
    await seed.review(1, 70.0, date(2026, 3, 25))
    # Previous month, 31 days before the period end
    await seed.warning(1, date(2026, 2, 28), severity="major")

    await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    penalty = 10 * (1 - 31 / 90)
    assert row.attendance_score == 100.0
    assert row.punctuality_score == 94.0
    assert row.task_score == 100.0
    assert row.test_score == 90.0
    assert row.review_score == 70.0
    assert row.used_components == 5
    assert row.warning_penalty == pytest.approx(penalty)
    assert row.effective_score == pytest.approx((100 + 94 + 100 + 90 + 70) / 5 - penalty)


async def test_warnings_outside_the_decay_window_are_ignored(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    await seed.test_result(1, 80.0, _at(date(2026, 3, 5)))
    await seed.warning(1, MARCH_END - timedelta(days=91), severity="major")
    await seed.warning(1, date(2026, 4, 2), severity="major")  # after the period
    await seed.warning(1, MARCH_END, severity="major", event_type="commendation")

    await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    assert row.warning_penalty == 0.0
    assert row.effective_score == 80.0


async def test_records_outside_the_month_are_ignored(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    await seed.shift(1, date(2026, 2, 28))
    await seed.test_result(1, 40.0, _at(date(2026, 4, 1), hour=0))
    await seed.review(1, 40.0, date(2026, 2, 28))
    await seed.test_result(1, 100.0, _at(MARCH_END, hour=23))

    await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    assert row.attendance_score is None
    assert row.review_score is None
    assert row.test_score == 100.0


async def test_companies_do_not_see_each_others_records(seed, session_factory, fetch_snapshot):
    await seed.employee(1, company_id=1)
    await seed.employee(2, company_id=2, location_id=20)
    await seed.test_result(1, 60.0, _at(date(2026, 3, 5)), company_id=2)
    await seed.test_result(2, 75.0, _at(date(2026, 3, 5)), company_id=2)

    run = await run_monthly_snapshot(session_factory, MARCH)

    rows = await fetch_snapshot()
    assert run.companies == 2
    assert run.upserted == 2
    assert rows[1].test_score is None
    assert rows[2].company_id == 2
    assert rows[2].test_score == 75.0


async def test_ranks_cover_each_location_without_gaps(seed, session_factory, fetch_snapshot):
    scores = {1: 70.0, 2: 90.0, 3: 90.0, 4: 50.0, 5: 65.0}
    locations = {1: 10, 2: 10, 3: 10, 4: 20, 5: 20}
    for employee_id, score in scores.items():
        await seed.employee(employee_id, location_id=locations[employee_id])
        await seed.review(employee_id, score, date(2026, 3, 15))
    await seed.employee(6, location_id=None)
    await seed.review(6, 99.0, date(2026, 3, 15))

    await run_monthly_snapshot(session_factory, MARCH)

    rows = await fetch_snapshot()
    # Equal scores keep employee order
    assert [rows[e].rank_in_location for e in (2, 3, 1)] == [1, 2, 3]
    assert [rows[e].rank_in_location for e in (5, 4)] == [1, 2]
    assert rows[6].effective_score == 99.0
    assert rows[6].rank_in_location is None


async def test_rerun_is_idempotent(seed, session_factory, fetch_snapshot):
    for employee_id in (1, 2, 3):
        await seed.employee(employee_id)
        await seed.review(employee_id, 60.0 + employee_id, date(2026, 3, 15))
    await seed.warning(2, date(2026, 3, 1))

    first = await run_monthly_snapshot(session_factory, MARCH)
    before = {e: _values(r) for e, r in (await fetch_snapshot()).items()}
    second = await run_monthly_snapshot(session_factory, MARCH)
    after = {e: _values(r) for e, r in (await fetch_snapshot()).items()}

    assert first.upserted == second.upserted == 3
    assert before == after


async def test_rerun_after_correction_only_moves_that_location(seed, session_factory, fetch_snapshot):
    day = date(2026, 3, 12)
    for employee_id, location_id in ((1, 10), (2, 10), (3, 20), (4, 20)):
        await seed.employee(employee_id, location_id=location_id)
    shift_1 = await seed.shift(1, day)
    shift_2 = await seed.shift(2, day)
    await seed.check_in(2, _at(day), shift_id=shift_2)
    await seed.review(3, 80.0, day)
    await seed.review(4, 85.0, day)

    await run_monthly_snapshot(session_factory, MARCH)
    before = await fetch_snapshot()
    assert before[2].rank_in_location == 1
    assert before[1].rank_in_location == 2

    # Late-arriving attendance correction for employee 1, who also gets a review
    await seed.check_in(1, _at(day, hour=8), shift_id=shift_1)
    await seed.review(1, 100.0, day)
    await run_monthly_snapshot(session_factory, MARCH)
    after = await fetch_snapshot()

    assert after[1].attendance_score == 100.0
    assert after[1].rank_in_location == 1
    assert after[2].rank_in_location == 2
    assert _values(after[3]) == _values(before[3])
    assert _values(after[4]) == _values(before[4])
    assert len(after) == 4


async def test_rerun_replaces_rather_than_merges(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    await seed.review(1, 80.0, date(2026, 3, 15))
    await run_monthly_snapshot(session_factory, MARCH)

    # Employee leaves the location; a stale rank must not survive the re-run
    async with session_factory() as db:
        employee = await db.get(Employee, 1)
        employee.location_id = None
        await db.commit()
    await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    assert row.effective_score == 80.0
    assert row.rank_in_location is None


async def test_backfill_leaves_other_months_alone(seed, session_factory, fetch_snapshot):
    await seed.employee(1)
    await seed.review(1, 80.0, date(2026, 3, 15))
    await seed.review(1, 40.0, date(2026, 2, 15))

    await run_monthly_snapshot(session_factory, MARCH)
    await run_monthly_snapshot(session_factory, "2026-02-01")

    assert (await fetch_snapshot())[1].review_score == 80.0
    assert (await fetch_snapshot(date(2026, 2, 1)))[1].review_score == 40.0


async def test_default_month_is_previous_calendar_month(seed, session_factory, fetch_snapshot):
    await seed.employee(1)

    run = await run_monthly_snapshot(session_factory, None, now=datetime(2026, 4, 3, tzinfo=timezone.utc))

    assert run.month == MARCH
    assert 1 in await fetch_snapshot()


async def test_collection_failure_skips_only_that_company(seed, session_factory, fetch_snapshot, monkeypatch):
    await seed.employee(1, company_id=1)
    await seed.employee(2, company_id=2)
    real_load = pipeline.load_company_sources

    async def failing_load(factory, company_id, *args):
        if company_id == 1:
            raise SnapshotCollectionError(company_id, "attendance", "connection reset")
        return await real_load(factory, company_id, *args)

    monkeypatch.setattr(pipeline, "load_company_sources", failing_load)

    run = await run_monthly_snapshot(session_factory, MARCH)

    assert run.failed_companies == [1]
    assert run.upserted == 1
    assert list(await fetch_snapshot()) == [2]


async def test_persistence_failure_skips_only_that_company(seed, session_factory, fetch_snapshot, monkeypatch):
    await seed.employee(1, company_id=1)
    await seed.employee(2, company_id=2)
    real_write = pipeline.write_snapshot

    async def failing_write(db, company_id, rows):
        if company_id == 2:
            raise SnapshotPersistenceError(company_id, "deadlock detected")
        return await real_write(db, company_id, rows)

    monkeypatch.setattr(pipeline, "write_snapshot", failing_write)

    run = await run_monthly_snapshot(session_factory, MARCH)

    assert run.failed_companies == [2]
    assert run.upserted == 1
    assert list(await fetch_snapshot()) == [1]


async def test_slow_company_times_out_and_others_continue(seed, session_factory, fetch_snapshot, monkeypatch):
    await seed.employee(1, company_id=1)
    await seed.employee(2, company_id=2)
    real_load = pipeline.load_company_sources

    async def slow_load(factory, company_id, *args):
        if company_id == 2:
            await asyncio.sleep(5)
        return await real_load(factory, company_id, *args)

    monkeypatch.setattr(pipeline, "load_company_sources", slow_load)

    run = await run_monthly_snapshot(session_factory, MARCH, company_timeout=0.5)

    assert run.failed_companies == [2]
    assert list(await fetch_snapshot()) == [1]


async def test_unexpected_error_propagates_with_progress_recorded(seed, session_factory, monkeypatch):
    await seed.employee(1, company_id=1)
    await seed.employee(2, company_id=2)
    real_process = pipeline.process_company

    async def exploding_process(factory, company_id, *args):
        if company_id == 2:
            raise RuntimeError("boom")
        return await real_process(factory, company_id, *args)

    monkeypatch.setattr(pipeline, "process_company", exploding_process)
    run = pipeline.SnapshotRun()

    with pytest.raises(RuntimeError):
        await run_monthly_snapshot(session_factory, MARCH, run=run, max_concurrency=1)

    assert run.month == MARCH
    assert run.upserted == 1


async def test_failed_read_cancels_the_other_reads_of_that_company(seed, session_factory, monkeypatch):
    await seed.employee(1)
    reviews_started = asyncio.Event()
    cancelled = []

    async def broken_attendance(db, company_id, period):
        await reviews_started.wait()
        raise OperationalError("SELECT * FROM attendance_logs", {}, Exception("disk I/O error"))

    async def slow_reviews(db, company_id, period):
        reviews_started.set()
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(company_id)
            raise
        return []

    monkeypatch.setattr(sources, "load_attendance", broken_attendance)
    monkeypatch.setattr(sources, "load_reviews", slow_reviews)

    run = await run_monthly_snapshot(session_factory, MARCH)

    pending_reads = [
        task for task in asyncio.all_tasks()
        if not task.done() and getattr(task.get_coro(), "__name__", None) == "_read"
    ]
    assert run.failed_companies == [1]
    assert pending_reads == []
    assert cancelled == [1]


async def test_database_error_in_a_source_read_is_a_collection_error(seed, engine, session_factory, fetch_snapshot):
    await seed.employee(1)
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE staff_audits"))

    with pytest.raises(SnapshotCollectionError) as excinfo:
        await sources.load_company_sources(session_factory, 1, month_period(2026, 3), 90)

    assert excinfo.value.company_id == 1
    assert excinfo.value.source == "reviews"
    assert isinstance(excinfo.value.__cause__, SQLAlchemyError)

    run = await run_monthly_snapshot(session_factory, MARCH)

    assert run.failed_companies == [1]
    assert await fetch_snapshot() == {}


async def test_unsupported_dialect_skips_companies_without_aborting_the_run(seed, session_factory, monkeypatch):
    await seed.employee(1, company_id=1)
    await seed.employee(2, company_id=2)
    monkeypatch.setattr(snapshot_writer, "_INSERTS", {"postgresql": snapshot_writer.pg_insert})

    run = await run_monthly_snapshot(session_factory, MARCH)

    assert run.failed_companies == [1, 2]
    assert run.upserted == 0


async def test_warning_decay_window_is_fixed_at_ninety_days(seed, session_factory, fetch_snapshot, monkeypatch):
    monkeypatch.setenv("WARNING_DECAY_DAYS", "30")
    await seed.employee(1)
    await seed.review(1, 80.0, date(2026, 3, 10))
    await seed.warning(1, MARCH_END - timedelta(days=60), severity="minor")

    await run_monthly_snapshot(session_factory, MARCH)

    row = (await fetch_snapshot())[1]
    assert "WARNING_DECAY_DAYS" not in Settings.model_fields
    assert row.warning_penalty == pytest.approx(5 * (1 - 60 / 90))
    assert row.effective_score == pytest.approx(80.0 - 5 * (1 - 60 / 90))
