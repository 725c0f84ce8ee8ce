from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.orm import Session

from goaltracker.core.config import settings
from goaltracker.core.time_utils import Clock, SystemClock, new_id, resolve_timezone
from goaltracker.db import get_db
from goaltracker.services.goals import GoalManager
from goaltracker.services.progress import ProgressAccumulator
from goaltracker.services.store import GoalStore
from goaltracker.services.workouts import WorkoutCompletionProcessor

_system_clock = SystemClock()


# Overridden in tests with a FixedClock
def get_clock() -> Clock:
    return _system_clock


@dataclass
class Services:
    store: GoalStore
    goals: GoalManager
    progress: ProgressAccumulator
    workouts: WorkoutCompletionProcessor


def get_services(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Services:
    tz = resolve_timezone(settings.timezone)
    store = GoalStore(db, clock)
    progress = ProgressAccumulator(store, tz)
    return Services(
        store=store,
        goals=GoalManager(store, clock, new_id, tz),
        progress=progress,
        workouts=WorkoutCompletionProcessor(progress, clock),
    )
