"""
Reporting periods.

resolve_period() is the only place that turns a period descriptor into concrete
bounds. Everything downstream consumes the DateRange it returns: DATE columns filter
on start_date/end_date, timestamp columns on start/end.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .errors import ValidationError
from .time_utils import parse_iso_date, utcnow


PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_QUARTER = "quarter"
PERIOD_YEAR = "year"
PERIOD_CUSTOM = "custom"

PERIOD_TYPES = (
    PERIOD_DAY,
    PERIOD_WEEK,
    PERIOD_MONTH,
    PERIOD_QUARTER,
    PERIOD_YEAR,
    PERIOD_CUSTOM,
)

# Inclusive end of a day, millisecond precision
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class DateRange:
    period_type: str
    start: datetime
    end: datetime
    label: str

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, instant: datetime | date) -> bool:
        if isinstance(instant, datetime):
            return self.start <= instant <= self.end
        return self.start_date <= instant <= self.end_date

    def to_dict(self) -> dict:
        return {
            "start": self.start_date.isoformat(),
            "end": self.end_date.isoformat(),
        }


def _day_bounds(first: date, last: date) -> tuple[datetime, datetime]:
    return datetime.combine(first, time.min), datetime.combine(last, END_OF_DAY)


def _parse_bound(value: str | date | datetime, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    return parsed


def format_period_label(period_type: str, first: date, last: date) -> str:
    if period_type == PERIOD_DAY:
        return first.isoformat()
    if period_type == PERIOD_WEEK:
        return f"Week of {first.isoformat()}"
    if period_type == PERIOD_MONTH:
        return f"{calendar.month_name[first.month]} {first.year}"
    if period_type == PERIOD_QUARTER:
        return f"Q{(first.month - 1) // 3 + 1} {first.year}"
    if period_type == PERIOD_YEAR:
        return f"{first.year}"
    return f"{first.isoformat()} to {last.isoformat()}"


def resolve_period(
    period_type: str,
    start: str | date | None = None,
    end: str | date | None = None,
    *,
    now: datetime | None = None,
) -> DateRange:
    """
    Resolve a period descriptor into an inclusive DateRange.

    Calendar periods are relative to ``now`` (UTC). ``custom`` requires both bounds;
    its end is pushed to 23:59:59.999 of the end date whatever time was supplied.

    Raises:
        ValidationError: unknown period type, missing or malformed custom bounds,
            or a custom start after its end
    """
    if period_type not in PERIOD_TYPES:
        raise ValidationError(
            f"Invalid period: {period_type}. Must be one of {list(PERIOD_TYPES)}"
        )

    if period_type == PERIOD_CUSTOM:
        if not start or not end:
            raise ValidationError("Start date and end date are required for custom period")
        first = _parse_bound(start, "start_date")
        last = _parse_bound(end, "end_date")
        if first > last:
            raise ValidationError("start_date must be on or before end_date")
    else:
        today = (now or utcnow()).date()

        if period_type == PERIOD_DAY:
            first = last = today
        elif period_type == PERIOD_WEEK:
            # Sunday-based week: date.weekday() is Monday=0 .. Sunday=6
            first = today - timedelta(days=(today.weekday() + 1) % 7)
            last = first + timedelta(days=6)
        elif period_type == PERIOD_MONTH:
            first = today.replace(day=1)
            last = today.replace(day=calendar.monthrange(today.year, today.month)[1])
        elif period_type == PERIOD_QUARTER:
            first_month = (today.month - 1) // 3 * 3 + 1
            last_month = first_month + 2
            first = date(today.year, first_month, 1)
            last = date(today.year, last_month, calendar.monthrange(today.year, last_month)[1])
        else:
            first = date(today.year, 1, 1)
            last = date(today.year, 12, 31)

    start_dt, end_dt = _day_bounds(first, last)
    return DateRange(
        period_type=period_type,
        start=start_dt,
        end=end_dt,
        label=format_period_label(period_type, first, last),
    )
