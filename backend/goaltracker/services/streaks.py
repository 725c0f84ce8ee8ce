from typing import Iterable

from goaltracker.models.goal import GoalProgress
from goaltracker.services.store import GoalStore


def count_streak(completed: Iterable[GoalProgress]) -> int:
    """Count the run of adjacent periods at the head of `completed`.

    `completed` must hold completed periods only, most recent first. A
    period continues the streak when it ends exactly where the previously
    counted one starts; anything else (a missed or never-attempted period)
    is a gap and stops the count.
    """
    streak = 0
    previous_start = None
    for period in completed:
        if previous_start is not None and period.period_end != previous_start:
            break
        streak += 1
        previous_start = period.period_start
    return streak


def calculate_streak(store: GoalStore, goal_id: str) -> int:
    """Consecutive completed periods counted back from the most recent one."""
    return count_streak(store.list_completed_progress(goal_id))
