"""Goal management and the read model the presentation layer consumes.

Status and streak are recomputed from progress history on every read;
nothing derived is written back to the goal row.
"""

import logging
import math
from datetime import tzinfo
from typing import Optional

from goaltracker.core.config import settings
from goaltracker.core.constants import DEFAULT_UNITS
from goaltracker.core.errors import InvalidArgument
from goaltracker.core.periods import compute_period_bounds
from goaltracker.core.status import derive_status
from goaltracker.core.time_utils import Clock, IdGenerator, SystemClock, ensure_utc, new_id
from goaltracker.models.goal import Goal
from goaltracker.schemas.goal import GoalBase, GoalPeriodEntry, GoalWithProgress
from goaltracker.services.store import GoalStore
from goaltracker.services.streaks import calculate_streak

logger = logging.getLogger(__name__)


class GoalManager:
    def __init__(
        self,
        store: GoalStore,
        clock: Optional[Clock] = None,
        id_factory: IdGenerator = new_id,
        tz: Optional[tzinfo] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.id_factory = id_factory
        self.tz = tz

    def _fields(self, payload: GoalBase, default_start=None) -> dict:
        if not math.isfinite(payload.target_value) or payload.target_value <= 0:
            raise InvalidArgument("target_value must be a finite number > 0")
        if not payload.name.strip():
            raise InvalidArgument("name must not be empty")
        start = payload.start_date or default_start or self.clock.now()
        start = ensure_utc(start)
        end = ensure_utc(payload.end_date) if payload.end_date else None
        if end is not None and end < start:
            raise InvalidArgument("end_date must be on or after start_date")

        return {
            "name": payload.name.strip(),
            # keep order, drop duplicates
            "exercise_ids": list(dict.fromkeys(payload.exercise_ids)),
            "metric": payload.metric.value,
            "target_value": float(payload.target_value),
            "target_unit": payload.target_unit or DEFAULT_UNITS[payload.metric.value],
            "frequency": payload.frequency.value,
            "start_date": start,
            "end_date": end,
            "auto_track": payload.auto_track,
        }

    # ---- writes ----

    def create_goal(self, payload: GoalBase) -> Goal:
        fields = self._fields(payload)
        goal = self.store.create_goal(self.id_factory(), is_active=True, **fields)
        logger.info("created goal %s (%s %s)", goal.id, goal.frequency, goal.metric)
        return goal

    def update_goal(self, goal_id: str, payload: GoalBase) -> Goal:
        goal = self.store.require_goal(goal_id)
        return self.store.update_goal(goal, **self._fields(payload, goal.start_date))

    def set_active(self, goal_id: str, is_active: bool) -> Goal:
        """Pause or resume. Paused goals keep their history."""
        goal = self.store.require_goal(goal_id)
        return self.store.update_goal(goal, is_active=is_active)

    def delete_goal(self, goal_id: str) -> None:
        self.store.delete_goal(goal_id)
        logger.info("deleted goal %s", goal_id)

    def clone_goal(self, source_id: str) -> Goal:
        goal = self.store.clone_goal(source_id, self.id_factory())
        logger.info("cloned goal %s -> %s", source_id, goal.id)
        return goal

    # ---- reads ----

    def calculate_streak(self, goal_id: str) -> int:
        self.store.require_goal(goal_id)
        return calculate_streak(self.store, goal_id)

    def to_read_model(self, goal: Goal) -> GoalWithProgress:
        now = self.clock.now()
        period_start, _ = compute_period_bounds(goal.frequency, now, self.tz)
        progress = self.store.get_progress(goal.id, period_start)
        value = progress.current_value if progress else 0.0
        completed = bool(progress.is_completed) if progress else False

        return GoalWithProgress(
            id=goal.id,
            name=goal.name,
            exercise_ids=list(goal.exercise_ids or []),
            metric=goal.metric,
            target_value=goal.target_value,
            target_unit=goal.target_unit,
            frequency=goal.frequency,
            start_date=goal.start_date,
            end_date=goal.end_date,
            is_active=goal.is_active,
            auto_track=goal.auto_track,
            created_at=goal.created_at,
            current_period_value=value,
            current_period_completed=completed,
            status=derive_status(goal.is_active, goal.end_date, completed, now),
            streak_count=calculate_streak(self.store, goal.id),
        )

    def get_goal(self, goal_id: str) -> GoalWithProgress:
        return self.to_read_model(self.store.require_goal(goal_id))

    def list_goals(self, active_only: bool = False) -> list[GoalWithProgress]:
        return [self.to_read_model(g) for g in self.store.list_goals(active_only)]

    def get_period_history(
        self, goal_id: str, limit: Optional[int] = None
    ) -> list[GoalPeriodEntry]:
        """Most recent periods first, each measured against the current target."""
        goal = self.store.require_goal(goal_id)
        rows = self.store.list_all_progress_for_goal(
            goal_id, limit=limit or settings.history_limit
        )
        return [
            GoalPeriodEntry(
                period_start=row.period_start,
                period_end=row.period_end,
                value=row.current_value,
                target_value=goal.target_value,
                is_completed=row.is_completed,
            )
            for row in rows
        ]
