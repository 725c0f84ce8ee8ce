"""SQLAlchemy-backed goal store.

All persistence for goals and their per-period progress goes through
``GoalStore``. Write methods commit; any SQLAlchemy failure rolls the session
back and surfaces as ``StoreError``.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from goaltracker.core.config import settings
from goaltracker.core.errors import NotFound, StoreError
from goaltracker.core.time_utils import Clock, SystemClock
from goaltracker.models.goal import Goal, GoalProgress

logger = logging.getLogger(__name__)


class GoalStore:
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(str(exc)) from exc

    def _all(self, query) -> list:
        try:
            return query.all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(str(exc)) from exc

    # ---- goals ----

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        try:
            return self.db.get(Goal, goal_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(str(exc)) from exc

    def require_goal(self, goal_id: str) -> Goal:
        goal = self.get_goal(goal_id)
        if goal is None:
            raise NotFound(goal_id)
        return goal

    def list_goals(self, active_only: bool = False) -> list[Goal]:
        query = self.db.query(Goal)
        if active_only:
            query = query.filter(Goal.is_active.is_(True))
        # Most recent first
        return self._all(query.order_by(Goal.created_at.desc(), Goal.id))

    def list_active_auto_track_goals(self) -> list[Goal]:
        query = (
            self.db.query(Goal)
            .filter(Goal.is_active.is_(True))
            .filter(Goal.auto_track.is_(True))
            .order_by(Goal.created_at, Goal.id)
        )
        return self._all(query)

    def create_goal(self, goal_id: str, **fields) -> Goal:
        now = self.clock.now()
        goal = Goal(id=goal_id, created_at=now, updated_at=now, **fields)
        self.db.add(goal)
        self._commit()
        self.db.refresh(goal)
        return goal

    def update_goal(self, goal: Goal, **fields) -> Goal:
        for key, value in fields.items():
            setattr(goal, key, value)
        goal.updated_at = self.clock.now()
        self._commit()
        self.db.refresh(goal)
        return goal

    def delete_goal(self, goal_id: str) -> None:
        goal = self.require_goal(goal_id)
        # progress rows go with it (ORM cascade + ON DELETE CASCADE)
        self.db.delete(goal)
        self._commit()

    def clone_goal(self, source_id: str, new_id: str) -> Goal:
        """Copy a goal's definition under `new_id`: fresh start, no end, no history."""
        source = self.require_goal(source_id)
        return self.create_goal(
            new_id,
            name=source.name,
            exercise_ids=list(source.exercise_ids or []),
            metric=source.metric,
            target_value=source.target_value,
            target_unit=source.target_unit,
            frequency=source.frequency,
            start_date=self.clock.now(),
            end_date=None,
            is_active=True,
            auto_track=source.auto_track,
        )

    # ---- progress ----

    def _progress_query(self, goal_id: str, period_start: datetime):
        return (
            self.db.query(GoalProgress)
            .filter(GoalProgress.goal_id == goal_id)
            .filter(GoalProgress.period_start == period_start)
        )

    def get_progress(self, goal_id: str, period_start: datetime) -> Optional[GoalProgress]:
        rows = self._all(self._progress_query(goal_id, period_start).populate_existing())
        return rows[0] if rows else None

    def list_all_progress_for_goal(
        self, goal_id: str, limit: Optional[int] = None
    ) -> list[GoalProgress]:
        query = (
            self.db.query(GoalProgress)
            .filter(GoalProgress.goal_id == goal_id)
            .order_by(GoalProgress.period_start.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return self._all(query)

    def list_completed_progress(self, goal_id: str) -> list[GoalProgress]:
        """Completed periods for a goal, most recent first."""
        query = (
            self.db.query(GoalProgress)
            .filter(GoalProgress.goal_id == goal_id)
            .filter(GoalProgress.is_completed.is_(True))
            .order_by(GoalProgress.period_start.desc())
        )
        return self._all(query)

    def increment_progress(
        self,
        goal: Goal,
        period_start: datetime,
        period_end: datetime,
        value: float,
    ) -> GoalProgress:
        """Add `value` to the goal's row for `period_start`, creating it if needed.

        The increment is a single conditional UPDATE evaluated by the database,
        so concurrent writers cannot lose each other's contributions. When no
        row exists yet we INSERT inside a savepoint. If that insert fails and
        the row now exists, another writer won the race and we retry the
        UPDATE; any other integrity failure is a StoreError straight away.
        """
        goal_id, target = goal.id, goal.target_value
        attempts = settings.progress_upsert_retries
        for attempt in range(1, attempts + 1):
            now = self.clock.now()
            try:
                updated = self._progress_query(goal_id, period_start).update(
                    {
                        GoalProgress.current_value: GoalProgress.current_value + value,
                        GoalProgress.is_completed: (GoalProgress.current_value + value) >= target,
                        GoalProgress.updated_at: now,
                    },
                    synchronize_session=False,
                )
                if updated == 0:
                    try:
                        with self.db.begin_nested():
                            self.db.add(
                                GoalProgress(
                                    goal_id=goal_id,
                                    period_start=period_start,
                                    period_end=period_end,
                                    current_value=value,
                                    is_completed=value >= target,
                                    updated_at=now,
                                )
                            )
                    except IntegrityError as exc:
                        lost_race = self._progress_query(goal_id, period_start).first() is not None
                        self.db.rollback()
                        if not lost_race:
                            raise StoreError(str(exc)) from exc
                        logger.debug(
                            "progress insert conflict goal=%s period=%s attempt=%d",
                            goal_id, period_start.isoformat(), attempt,
                        )
                        continue
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                raise StoreError(str(exc)) from exc

            progress = self.get_progress(goal_id, period_start)
            logger.debug(
                "goal=%s period=%s +%s -> %s (completed=%s)",
                goal_id, period_start.isoformat(), value,
                progress.current_value, progress.is_completed,
            )
            return progress

        raise StoreError(
            f"Could not update progress for goal {goal_id} after {attempts} attempts"
        )
