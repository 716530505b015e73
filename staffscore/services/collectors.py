"""Per-employee component scores for one company and month.

Every collector returns ``{employee_id: score}`` for all of the given employees, where the
score is a float in [0, 100] or ``None`` when the employee had no underlying activity for
that component (not applicable).
"""
from collections import Counter, defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set

from staffscore.services.sources import (
    AttendanceRecord,
    CompletionRecord,
    ScoreRecord,
    ShiftSlot,
    TaskRecord,
)

ComponentMap = Dict[int, Optional[float]]

LATE_ARRIVAL_PENALTY = 5
LATE_MINUTES_PER_POINT = 10
LATE_MINUTES_MAX_PENALTY = 50


def _group(records: Iterable, key: str) -> Dict[int, list]:
    grouped = defaultdict(list)
    for record in records:
        grouped[getattr(record, key)].append(record)
    return grouped


def scheduled_shifts(shifts: Sequence[ShiftSlot], period_end: date) -> Dict[int, List[ShiftSlot]]:
    """Approved shift slots per employee up to and including `period_end`."""
    return _group((s for s in shifts if s.shift_date <= period_end), "staff_id")


def count_worked_shifts(slots: Sequence[ShiftSlot], records: Sequence[AttendanceRecord]) -> int:
    """Number of `slots` that have a matching attendance record.

    A shift matches a record that references it by id. Only when no record references the
    shift does a shift-less record checked in on the same day count, and each shift-less
    record covers at most one shift (taken in slot order).
    """
    linked = {r.shift_id for r in records if r.shift_id is not None}
    unlinked = Counter(r.check_in_at.date() for r in records if r.shift_id is None)

    worked = 0
    for slot in slots:
        if slot.shift_id in linked:
            worked += 1
        elif unlinked[slot.shift_date] > 0:
            unlinked[slot.shift_date] -= 1
            worked += 1
    return worked


def attendance_scores(
    employee_ids: Iterable[int],
    shifts: Sequence[ShiftSlot],
    attendance: Sequence[AttendanceRecord],
    period_end: date,
) -> ComponentMap:
    slots_by_employee = scheduled_shifts(shifts, period_end)
    attendance_by_employee = _group(attendance, "staff_id")

    scores = {}
    for employee_id in employee_ids:
        slots = slots_by_employee.get(employee_id, [])
        if not slots:
            scores[employee_id] = None
            continue
        worked = count_worked_shifts(slots, attendance_by_employee.get(employee_id, []))
        scores[employee_id] = worked / len(slots) * 100
    return scores


def punctuality_score(late_count: int, total_late_minutes: int) -> float:
    minutes_penalty = min(LATE_MINUTES_MAX_PENALTY, total_late_minutes // LATE_MINUTES_PER_POINT)
    return float(max(0, 100 - LATE_ARRIVAL_PENALTY * late_count - minutes_penalty))


def punctuality_scores(
    employee_ids: Iterable[int],
    shifts: Sequence[ShiftSlot],
    attendance: Sequence[AttendanceRecord],
    period_end: date,
) -> ComponentMap:
    # Only applicable where attendance is, i.e. the employee had scheduled shifts.
    slots_by_employee = scheduled_shifts(shifts, period_end)
    attendance_by_employee = _group(attendance, "staff_id")

    scores = {}
    for employee_id in employee_ids:
        if not slots_by_employee.get(employee_id):
            scores[employee_id] = None
            continue
        records = attendance_by_employee.get(employee_id, [])
        late_count = sum(1 for r in records if r.is_late)
        late_minutes = sum(r.late_minutes or 0 for r in records)
        scores[employee_id] = punctuality_score(late_count, late_minutes)
    return scores


def task_scores(
    employee_ids: Iterable[int],
    tasks: Sequence[TaskRecord],
    completions: Sequence[CompletionRecord],
    shifts: Sequence[ShiftSlot],
) -> ComponentMap:
    """On-time ratio over direct tasks plus shared-task completions on the employee's shift days.

    Shared completions only count on dates the employee had an approved shift, so a shared task
    isn't credited to someone who wasn't on site.
    """
    tasks_by_employee = _group(tasks, "assigned_to")
    completions_by_employee = _group(completions, "completed_by")
    shift_dates: Dict[int, Set[date]] = defaultdict(set)
    for slot in shifts:
        shift_dates[slot.staff_id].add(slot.shift_date)

    scores = {}
    for employee_id in employee_ids:
        direct = tasks_by_employee.get(employee_id, [])
        direct_ids = {t.id for t in direct}
        dates = shift_dates.get(employee_id, set())
        shared = [
            c for c in completions_by_employee.get(employee_id, [])
            if c.task_id not in direct_ids and c.occurrence_date in dates
        ]

        assigned = len(direct) + len(shared)
        if assigned == 0:
            scores[employee_id] = None
            continue
        on_time = (
            sum(1 for t in direct if t.status == "completed" and not t.completed_late)
            + sum(1 for c in shared if c.completed_late is not True)
        )
        scores[employee_id] = on_time / assigned * 100
    return scores


def _mean_scores(employee_ids: Iterable[int], records: Sequence[ScoreRecord]) -> ComponentMap:
    by_employee = _group(records, "employee_id")
    scores = {}
    for employee_id in employee_ids:
        rows = by_employee.get(employee_id)
        if not rows:
            scores[employee_id] = None
        else:
            scores[employee_id] = sum(r.score or 0 for r in rows) / len(rows)
    return scores


def test_scores(employee_ids: Iterable[int], submissions: Sequence[ScoreRecord]) -> ComponentMap:
    return _mean_scores(employee_ids, submissions)


def review_scores(employee_ids: Iterable[int], reviews: Sequence[ScoreRecord]) -> ComponentMap:
    return _mean_scores(employee_ids, reviews)
