from datetime import datetime, timedelta, timezone

import pytest

from goaltracker.core.status import derive_status
from goaltracker.schemas.goal import GoalStatus

NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=1)
FUTURE = NOW + timedelta(days=1)


@pytest.mark.parametrize("end_date", [None, PAST, FUTURE])
@pytest.mark.parametrize("completed", [True, False])
def test_paused_wins_over_everything(end_date, completed):
    assert derive_status(False, end_date, completed, NOW) is GoalStatus.paused


@pytest.mark.parametrize("completed", [True, False])
def test_expired_wins_over_completed(completed):
    assert derive_status(True, PAST, completed, NOW) is GoalStatus.expired


def test_completed_reflects_current_period():
    assert derive_status(True, None, True, NOW) is GoalStatus.completed
    assert derive_status(True, FUTURE, True, NOW) is GoalStatus.completed


def test_active_otherwise():
    assert derive_status(True, None, False, NOW) is GoalStatus.active
    # end date equal to now has not passed yet
    assert derive_status(True, NOW, False, NOW) is GoalStatus.active
