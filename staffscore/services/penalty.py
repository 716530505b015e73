from datetime import date
from typing import Dict, Iterable, Sequence

from staffscore.services.sources import WarningRecord

MAJOR_WARNING_WEIGHT = 10.0
WARNING_WEIGHT = 5.0
DEFAULT_DECAY_DAYS = 90


def decay(days_elapsed: float, window_days: int = DEFAULT_DECAY_DAYS) -> float:
    """Linear decay from 1 (same day) to 0 (`window_days` old or older)."""
    if days_elapsed < 0:
        return 0.0
    return max(0.0, 1 - days_elapsed / window_days)


def warning_weight(severity) -> float:
    return MAJOR_WARNING_WEIGHT if severity == "major" else WARNING_WEIGHT


def warning_contribution(warning: WarningRecord, anchor: date, window_days: int = DEFAULT_DECAY_DAYS) -> float:
    days = (anchor - warning.event_date).days
    return warning_weight(warning.severity) * decay(days, window_days)


def warning_penalties(
    employee_ids: Iterable[int],
    warnings: Sequence[WarningRecord],
    anchor: date,
    window_days: int = DEFAULT_DECAY_DAYS,
) -> Dict[int, float]:
    """Decayed warning penalty per employee, anchored at the period end."""
    penalties = {employee_id: 0.0 for employee_id in employee_ids}
    for warning in warnings:
        if warning.staff_id in penalties:
            penalties[warning.staff_id] += warning_contribution(warning, anchor, window_days)
    return penalties
