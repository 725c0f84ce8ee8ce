import logging
import math
from datetime import datetime
from typing import Iterable, Mapping, Optional

from goaltracker.core.constants import SESSION_CONTRIBUTION, SESSIONS_METRIC, SUMMED_METRICS
from goaltracker.core.errors import NotFound, StoreError
from goaltracker.core.time_utils import Clock, SystemClock
from goaltracker.schemas.goal import WorkoutResult
from goaltracker.services.progress import ProgressAccumulator

logger = logging.getLogger(__name__)

MetricTotals = Mapping[str, Mapping[str, float]]


def matching_exercises(linked_ids: Iterable[str], exercise_ids: Iterable[str]) -> list[str]:
    linked = set(linked_ids)
    seen: list[str] = []
    for exercise_id in exercise_ids:
        if exercise_id in linked and exercise_id not in seen:
            seen.append(exercise_id)
    return seen


def metric_contribution(metric: str, matched: list[str], totals: MetricTotals) -> float:
    """How much one workout adds to a goal on `metric`, given its matched exercises.

    Summed metrics add up the workout's per-exercise totals (missing = 0);
    a sessions goal gets one session; an unknown metric contributes nothing.
    """
    if metric == SESSIONS_METRIC:
        return SESSION_CONTRIBUTION
    if metric not in SUMMED_METRICS:
        return 0.0
    return sum(float((totals.get(eid) or {}).get(metric, 0.0)) for eid in matched)


class WorkoutCompletionProcessor:
    """Credits a finished workout to every active auto-tracking goal it matches."""

    def __init__(self, accumulator: ProgressAccumulator, clock: Optional[Clock] = None):
        self.accumulator = accumulator
        self.store = accumulator.store
        self.clock = clock or SystemClock()

    def process_workout_completion(
        self,
        exercise_ids: Iterable[str],
        metric_totals: MetricTotals,
        timestamp: Optional[datetime] = None,
    ) -> WorkoutResult:
        """Fan a workout summary out to goals.

        Each goal is updated on its own: a goal that fails with NotFound or
        StoreError is logged and recorded in `failed`, and the rest still
        get their credit. Writes already committed are kept.
        """
        exercise_ids = list(exercise_ids)
        timestamp = timestamp or self.clock.now()
        result = WorkoutResult()

        # Snapshot first: every commit below expires the loaded Goal rows
        goals = [
            (g.id, g.metric, list(g.exercise_ids or []))
            for g in self.store.list_active_auto_track_goals()
        ]

        for goal_id, metric, linked_ids in goals:
            matched = matching_exercises(linked_ids, exercise_ids)
            # A sessions goal with no linked exercises counts every workout
            counts_any_workout = metric == SESSIONS_METRIC and not linked_ids
            if not matched and not counts_any_workout:
                result.skipped.append(goal_id)
                continue

            value = metric_contribution(metric, matched, metric_totals)
            if not math.isfinite(value) or value <= 0:
                result.skipped.append(goal_id)
                continue

            try:
                self.accumulator.add_progress(goal_id, value, timestamp)
            except NotFound:
                logger.warning("goal %s disappeared while processing workout", goal_id)
                result.failed.append(goal_id)
            except StoreError:
                logger.exception("could not credit workout to goal %s", goal_id)
                result.failed.append(goal_id)
            else:
                result.updated.append(goal_id)

        logger.info(
            "workout processed: %d updated, %d skipped, %d failed",
            len(result.updated), len(result.skipped), len(result.failed),
        )
        return result
