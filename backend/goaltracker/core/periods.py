"""Period bounds for recurring goals.

A period is the half-open window ``[start, end)`` on the local calendar of
a timezone. The end of one period is exactly the start of the next, so a
goal's progress rows can be joined on ``period_start`` and adjacent periods
compared with ``==``.
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple

from goaltracker.core.constants import WEEK_START_WEEKDAY
from goaltracker.core.time_utils import ensure_utc
from goaltracker.schemas.goal import GoalFrequency


def _local_midnight(d: date, tz: tzinfo) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=tz).astimezone(timezone.utc)


def week_start_of(d: date) -> date:
    # Monday = 0, Sunday = 6
    return d - timedelta(days=(d.weekday() - WEEK_START_WEEKDAY) % 7)


def _first_day_bounds(frequency: GoalFrequency, d: date) -> Tuple[date, date]:
    if frequency is GoalFrequency.daily:
        return d, d + timedelta(days=1)
    if frequency is GoalFrequency.weekly:
        first = week_start_of(d)
        return first, first + timedelta(days=7)
    if frequency is GoalFrequency.monthly:
        first = d.replace(day=1)
        if first.month == 12:
            return first, date(first.year + 1, 1, 1)
        return first, date(first.year, first.month + 1, 1)
    if frequency is GoalFrequency.yearly:
        return date(d.year, 1, 1), date(d.year + 1, 1, 1)
    raise ValueError(f"Unsupported frequency: {frequency}")


def compute_period_bounds(
    frequency, reference: datetime, tz: Optional[tzinfo] = None
) -> Tuple[datetime, datetime]:
    """Return the UTC ``(period_start, period_end)`` containing `reference`.

    `frequency` may be a GoalFrequency or its string value. `reference` is
    taken as UTC when naive; `tz` (default UTC) decides where local midnight
    falls.

    Example: weekly, 2025-01-08T15:00Z -> (2025-01-06T00:00Z, 2025-01-13T00:00Z)
    """
    tz = tz or timezone.utc
    frequency = GoalFrequency(frequency)
    local_day = ensure_utc(reference).astimezone(tz).date()
    first, next_first = _first_day_bounds(frequency, local_day)
    return _local_midnight(first, tz), _local_midnight(next_first, tz)
