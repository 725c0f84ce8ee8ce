from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, computed_field

from goaltracker.core.constants import FIELD_METRICS


class GoalMetric(str, Enum):
    distance = "distance"
    duration = "duration"
    reps = "reps"
    sets = "sets"
    volume = "volume"
    sessions = "sessions"

    @classmethod
    def available_for_fields(cls, field_keys: Iterable[str]) -> list["GoalMetric"]:
        """Metrics a goal can track for an exercise recording `field_keys`.

        Example: {"reps", "weight"} -> [reps, sets, volume, sessions]
        """
        keys = set(field_keys)
        found: list[GoalMetric] = []
        for field, metrics in FIELD_METRICS.items():
            if field not in keys:
                continue
            for m in metrics:
                if cls(m) not in found:
                    found.append(cls(m))
        found.append(cls.sessions)
        return found


class GoalFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class GoalStatus(str, Enum):
    active = "active"
    paused = "paused"
    completed = "completed"
    expired = "expired"


class GoalBase(BaseModel):
    name: str
    exercise_ids: list[str] = Field(default_factory=list)
    metric: GoalMetric
    target_value: float
    target_unit: Optional[str] = None  # defaults to the metric's unit
    frequency: GoalFrequency = GoalFrequency.weekly
    start_date: Optional[datetime] = None  # defaults to now
    end_date: Optional[datetime] = None  # None = ongoing
    auto_track: bool = True


class GoalCreate(GoalBase):
    """Schema for creating a new goal."""
    pass


class GoalUpdate(GoalBase):
    """Schema for replacing a goal's editable fields."""
    pass


class GoalWithProgress(BaseModel):
    """A goal joined with its current period. Built on every read, never stored."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    exercise_ids: list[str]
    metric: GoalMetric
    target_value: float
    target_unit: str
    frequency: GoalFrequency
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool
    auto_track: bool
    created_at: datetime
    current_period_value: float = 0.0
    current_period_completed: bool = False
    status: GoalStatus
    streak_count: int = 0

    @computed_field
    @property
    def progress_fraction(self) -> float:
        if self.target_value <= 0:
            return 0.0
        return min(max(self.current_period_value / self.target_value, 0.0), 1.0)

    @computed_field
    @property
    def progress_percent(self) -> int:
        return int(self.progress_fraction * 100)

    @computed_field
    @property
    def is_ongoing(self) -> bool:
        return self.end_date is None


class GoalPeriodEntry(BaseModel):
    period_start: datetime
    period_end: datetime
    value: float
    target_value: float
    is_completed: bool

    @computed_field
    @property
    def progress_fraction(self) -> float:
        if self.target_value <= 0:
            return 0.0
        return min(max(self.value / self.target_value, 0.0), 1.0)

    @computed_field
    @property
    def progress_percent(self) -> int:
        return int(self.progress_fraction * 100)


class ProgressAdd(BaseModel):
    value: FiniteFloat
    timestamp: Optional[datetime] = None  # defaults to now


class StreakRead(BaseModel):
    goal_id: str
    streak_count: int


class WorkoutCompletion(BaseModel):
    """Summary of a finished workout, pre-aggregated per exercise.

    Example: {"exercise_ids": ["bench"], "metric_totals": {"bench": {"volume": 1200.0}}}
    """

    exercise_ids: list[str]
    metric_totals: dict[str, dict[str, FiniteFloat]] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None  # defaults to now


class WorkoutResult(BaseModel):
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
