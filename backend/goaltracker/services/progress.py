import logging
import math
from datetime import datetime, tzinfo
from typing import Optional

from goaltracker.core.errors import InvalidArgument
from goaltracker.core.periods import compute_period_bounds
from goaltracker.models.goal import GoalProgress
from goaltracker.services.store import GoalStore

logger = logging.getLogger(__name__)


class ProgressAccumulator:
    """Running per-period totals for goals."""

    def __init__(self, store: GoalStore, tz: Optional[tzinfo] = None):
        self.store = store
        self.tz = tz

    def add_progress(self, goal_id: str, value: float, timestamp: datetime) -> GoalProgress:
        """Add `value` to the period of `goal_id` that contains `timestamp`.

        Raises NotFound for an unknown goal, InvalidArgument for NaN or
        infinite values and StoreError if the write fails. Non-positive
        values are applied like any other delta.
        """
        if not math.isfinite(value):
            raise InvalidArgument(f"progress value must be finite, got {value}")
        goal = self.store.require_goal(goal_id)
        period_start, period_end = compute_period_bounds(goal.frequency, timestamp, self.tz)
        return self.store.increment_progress(goal, period_start, period_end, value)
