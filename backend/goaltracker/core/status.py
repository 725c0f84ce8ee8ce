from datetime import datetime
from typing import Optional

from goaltracker.core.time_utils import ensure_utc
from goaltracker.schemas.goal import GoalStatus


def derive_status(
    is_active: bool,
    end_date: Optional[datetime],
    current_period_completed: bool,
    now: datetime,
) -> GoalStatus:
    """Display state of a goal; first match wins.

    Pause beats expiry, and expiry beats completion. "completed" only
    describes the current period, not the goal's lifetime.
    """
    if not is_active:
        return GoalStatus.paused
    if end_date is not None and ensure_utc(now) > ensure_utc(end_date):
        return GoalStatus.expired
    if current_period_completed:
        return GoalStatus.completed
    return GoalStatus.active
