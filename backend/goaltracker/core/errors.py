"""Error taxonomy for goal tracking.

Business outcomes (a goal already completed, a zero streak, a non-positive
contribution) are never errors; these are raised only for missing records,
persistence failures and malformed input at the boundary.
"""


class GoalTrackerError(Exception):
    """Base class for everything raised by the goal tracking services."""


class NotFound(GoalTrackerError):
    def __init__(self, goal_id: str):
        super().__init__(f"Goal not found: {goal_id}")
        self.goal_id = goal_id


class StoreError(GoalTrackerError):
    """The underlying store failed (I/O, constraint, unresolved write conflict)."""


class InvalidArgument(GoalTrackerError):
    """Malformed input, e.g. a non-positive target value on creation."""
