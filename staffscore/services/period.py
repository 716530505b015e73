from dataclasses import dataclass
from datetime import date, datetime, timezone
from calendar import monthrange
from typing import Optional, Union


@dataclass(frozen=True)
class Period:
    start_date: date
    end_date: date

    @property
    def month_key(self) -> str:
        return self.start_date.isoformat()


def month_period(year: int, month: int) -> Period:
    return Period(date(year, month, 1), date(year, month, monthrange(year, month)[1]))


def parse_month(value: Union[str, date, None]) -> Optional[date]:
    """First day of the month named by `value`, or None if it can't be read as one.

    Accepts a date/datetime or a string "YYYY-MM-DD" / "YYYY-MM".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().replace(day=1)
    if isinstance(value, date):
        return value.replace(day=1)
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in ("%Y-%m-%d", "%Y-%m"):
        try:
            return datetime.strptime(text, fmt).date().replace(day=1)
        except ValueError:
            continue
    return None


def resolve_period(month: Union[str, date, None] = None, now: Optional[datetime] = None) -> Period:
    """Inclusive calendar-month window for `month`.

    Missing or unparsable input falls back to the previous calendar month relative to `now`.
    """
    first = parse_month(month)
    if first is None:
        now = now or datetime.now(timezone.utc)
        if now.month == 1:
            first = date(now.year - 1, 12, 1)
        else:
            first = date(now.year, now.month - 1, 1)
    return month_period(first.year, first.month)
