import os

# Use in-memory sqlite for tests; must be set before goaltracker.core.config loads
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timezone  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from goaltracker.core.time_utils import FixedClock  # noqa: E402
from goaltracker.db import Base, make_engine  # noqa: E402
from goaltracker.models import goal as _goal_models  # noqa: E402,F401
from goaltracker.schemas.goal import GoalCreate  # noqa: E402
from goaltracker.services.goals import GoalManager  # noqa: E402
from goaltracker.services.progress import ProgressAccumulator  # noqa: E402
from goaltracker.services.store import GoalStore  # noqa: E402
from goaltracker.services.workouts import WorkoutCompletionProcessor  # noqa: E402

# Wednesday
NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    eng = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store(db, clock):
    return GoalStore(db, clock)


@pytest.fixture
def manager(store, clock):
    ids = count(1)
    return GoalManager(store, clock, id_factory=lambda: f"goal-{next(ids)}")


@pytest.fixture
def accumulator(store):
    return ProgressAccumulator(store)


@pytest.fixture
def processor(accumulator, clock):
    return WorkoutCompletionProcessor(accumulator, clock)


@pytest.fixture
def make_goal(manager):
    def _make(**overrides):
        fields = {
            "name": "Run 25 km a week",
            "metric": "distance",
            "target_value": 25.0,
            "frequency": "weekly",
            "exercise_ids": ["run"],
        }
        fields.update(overrides)
        return manager.create_goal(GoalCreate(**fields))

    return _make
