from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from goaltracker.db import Base, UTCDateTime


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String(36), primary_key=True)

    name = Column(String, nullable=False)

    # Linked exercise ids, e.g. ["bench-press", "squat"]; empty is valid
    exercise_ids = Column(JSON, nullable=False, default=list)

    # distance, duration, reps, sets, volume, sessions
    metric = Column(String(20), nullable=False)
    target_value = Column(Float, nullable=False)
    target_unit = Column(String(20), nullable=False)  # display only

    # daily, weekly, monthly, yearly
    frequency = Column(String(20), nullable=False, default="weekly")

    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=True)  # None = ongoing

    is_active = Column(Boolean, nullable=False, default=True)
    auto_track = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    progress = relationship(
        "GoalProgress",
        back_populates="goal",
        cascade="all, delete-orphan",
    )

    # Status and streak are NOT stored: they are derived on every read


class GoalProgress(Base):
    __tablename__ = "goal_progress"
    __table_args__ = (
        UniqueConstraint("goal_id", "period_start", name="uq_goal_progress_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    goal_id = Column(
        String(36), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Half-open window [period_start, period_end) in UTC
    period_start = Column(UTCDateTime, nullable=False)
    period_end = Column(UTCDateTime, nullable=False)

    current_value = Column(Float, nullable=False, default=0.0)
    # Cached: current_value >= goal.target_value at the last update
    is_completed = Column(Boolean, nullable=False, default=False)

    updated_at = Column(UTCDateTime, nullable=False)

    goal = relationship("Goal", back_populates="progress")
