import threading
from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select, text
from sqlalchemy.orm import sessionmaker

from goaltracker.core.config import settings
from goaltracker.core.errors import InvalidArgument, NotFound, StoreError
from goaltracker.core.periods import compute_period_bounds
from goaltracker.db import Base, make_engine
from goaltracker.models.goal import GoalProgress
from goaltracker.schemas.goal import ProgressAdd
from goaltracker.services.progress import ProgressAccumulator
from goaltracker.services.store import GoalStore

from conftest import NOW


def test_contributions_in_same_week_accumulate_to_completion(make_goal, accumulator):
    goal = make_goal(target_value=25.0)

    first = accumulator.add_progress(goal.id, 10.0, NOW)
    assert first.current_value == 10.0
    assert first.is_completed is False

    second = accumulator.add_progress(goal.id, 16.0, NOW + timedelta(hours=1))
    assert second.id == first.id
    assert second.current_value == 26.0
    assert second.is_completed is True


def test_current_value_is_sum_of_applied_values(make_goal, accumulator):
    goal = make_goal(target_value=100.0)
    values = [1.5, 0.0, 12.25, 3.0, 40.0]
    for i, v in enumerate(values):
        row = accumulator.add_progress(goal.id, v, NOW + timedelta(minutes=i))
    assert row.current_value == pytest.approx(sum(values))
    assert row.is_completed is False


def test_completion_at_exact_target(make_goal, accumulator):
    goal = make_goal(target_value=5.0, metric="sets")
    row = accumulator.add_progress(goal.id, 5.0, NOW)
    assert row.is_completed is True


def test_each_period_gets_its_own_row(make_goal, accumulator, store):
    goal = make_goal(target_value=10.0)
    accumulator.add_progress(goal.id, 4.0, NOW)
    accumulator.add_progress(goal.id, 7.0, NOW + timedelta(days=7))

    rows = store.list_all_progress_for_goal(goal.id)
    assert [r.current_value for r in rows] == [7.0, 4.0]
    assert rows[0].period_start == rows[1].period_end


def test_row_bounds_come_from_goal_frequency(make_goal, accumulator):
    goal = make_goal(frequency="monthly")
    row = accumulator.add_progress(goal.id, 1.0, NOW)
    assert row.period_start.isoformat() == "2025-01-01T00:00:00+00:00"
    assert row.period_end.isoformat() == "2025-02-01T00:00:00+00:00"


def test_non_positive_value_is_accepted(make_goal, accumulator):
    goal = make_goal()
    row = accumulator.add_progress(goal.id, 0.0, NOW)
    assert row.current_value == 0.0
    assert row.is_completed is False


def test_unknown_goal_raises_not_found(accumulator):
    with pytest.raises(NotFound):
        accumulator.add_progress("missing", 1.0, NOW)


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_value_is_rejected(make_goal, accumulator, store, bad):
    goal = make_goal()
    with pytest.raises(InvalidArgument):
        accumulator.add_progress(goal.id, bad, NOW)
    assert store.list_all_progress_for_goal(goal.id) == []

    with pytest.raises(ValidationError):
        ProgressAdd(value=bad)


def count_updates(store, monkeypatch):
    """Wrap the session so UPDATE statements are counted."""
    seen = []
    real_execute = store.db.execute

    def execute(statement, *args, **kwargs):
        if getattr(statement, "is_update", False):
            seen.append(statement)
        return real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(store.db, "execute", execute)
    return seen


def test_insert_failure_other_than_conflict_is_not_retried(make_goal, store, monkeypatch):
    goal = make_goal()
    monkeypatch.setattr(settings, "progress_upsert_retries", 5)
    updates = count_updates(store, monkeypatch)
    start, _ = compute_period_bounds(goal.frequency, NOW)

    # period_end is NOT NULL, so the insert fails without any competing row
    with pytest.raises(StoreError):
        store.increment_progress(goal, start, None, 1.0)

    assert len(updates) == 1
    assert store.list_all_progress_for_goal(goal.id) == []


def test_insert_conflict_retries_the_update(make_goal, accumulator, store, monkeypatch):
    goal = make_goal(target_value=10.0)
    accumulator.add_progress(goal.id, 5.0, NOW)
    start, end = compute_period_bounds(goal.frequency, NOW)

    # First UPDATE sees no row, as if another writer inserted right after it
    real_execute = store.db.execute
    missed = []

    def execute(statement, *args, **kwargs):
        if getattr(statement, "is_update", False) and not missed:
            missed.append(statement)
            return real_execute(text("UPDATE goal_progress SET current_value = current_value WHERE 1 = 0"))
        return real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(store.db, "execute", execute)
    row = store.increment_progress(store.require_goal(goal.id), start, end, 2.0)

    assert len(missed) == 1
    assert row.current_value == 7.0
    assert [r.current_value for r in store.list_all_progress_for_goal(goal.id)] == [7.0]


def test_updated_at_is_stamped_from_clock(make_goal, accumulator, clock):
    goal = make_goal()
    accumulator.add_progress(goal.id, 1.0, NOW)
    later = clock.advance(minutes=30)
    row = accumulator.add_progress(goal.id, 1.0, NOW)
    assert row.updated_at == later


def test_concurrent_writers_do_not_lose_updates(tmp_path, clock):
    eng = make_engine(f"sqlite:///{tmp_path / 'goals.db'}")
    Base.metadata.create_all(bind=eng)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=eng)

    setup = GoalStore(Session(), clock)
    goal = setup.create_goal(
        "shared",
        name="Reps",
        exercise_ids=[],
        metric="reps",
        target_value=1000.0,
        target_unit="reps",
        frequency="weekly",
        start_date=NOW,
        end_date=None,
        is_active=True,
        auto_track=True,
    )
    setup.db.close()

    errors = []

    def worker():
        session = Session()
        try:
            acc = ProgressAccumulator(GoalStore(session, clock))
            for _ in range(5):
                acc.add_progress(goal.id, 1.0, NOW)
        except Exception as exc:  # surfaced below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    check = Session()
    total = check.scalar(select(func.sum(GoalProgress.current_value)))
    rows = check.scalar(select(func.count(GoalProgress.id)))
    check.close()
    eng.dispose()
    assert total == 20.0
    assert rows == 1
