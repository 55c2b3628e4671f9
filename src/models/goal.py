"""
Goal and GoalProgress models for Shree.

Goals form a tree through parent_goal_id (cycles are refused by
GoalService). Habit goals (daily/weekly frequency) carry a streak.

Invariants:
- current_value only grows through progress logging
- streak_count <= best_streak after every update
"""

from enum import StrEnum

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, Text

from src.models.base import Base, UTCDateTime, utcnow


class GoalType(StrEnum):
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"
    DAILY_HABIT = "daily_habit"
    WEEKLY_HABIT = "weekly_habit"
    INCOME = "income"
    SAVINGS = "savings"
    LEARNING = "learning"


class GoalFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    ONE_TIME = "one_time"


class GoalStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ARCHIVED = "archived"


class Goal(Base):
    """
    A trackable objective.

    Attributes:
        id: Primary key
        user_id: Owner
        parent_goal_id: Optional parent (tree, never a cycle)
        title: Goal title
        goal_type: One of GoalType
        target_value / current_value / unit: Optional numeric progress
        frequency: daily | weekly | one_time
        streak_count / best_streak: Consecutive cadence periods with progress
        last_progress_at: When progress was last logged
        status: active | completed | paused | archived
    """

    __tablename__ = "goals"
    __table_args__ = (Index("ix_goals_user_status", "user_id", "status"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_goal_id = Column(Integer, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    goal_type = Column(String(20), default=GoalType.SHORT_TERM.value, nullable=False)
    target_value = Column(Float, nullable=True)
    current_value = Column(Float, default=0.0, nullable=False)
    unit = Column(String(40), nullable=True)
    frequency = Column(String(10), default=GoalFrequency.ONE_TIME.value, nullable=False)
    deadline = Column(UTCDateTime(), nullable=True)

    streak_count = Column(Integer, default=0, nullable=False)
    best_streak = Column(Integer, default=0, nullable=False)
    last_progress_at = Column(UTCDateTime(), nullable=True)

    status = Column(String(20), default=GoalStatus.ACTIVE.value, nullable=False)
    completed_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_habit(self) -> bool:
        return self.frequency in (GoalFrequency.DAILY.value, GoalFrequency.WEEKLY.value)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "goal_type": self.goal_type,
            "frequency": self.frequency,
            "target_value": self.target_value,
            "current_value": self.current_value,
            "unit": self.unit,
            "streak_count": self.streak_count,
            "best_streak": self.best_streak,
            "status": self.status,
            "parent_goal_id": self.parent_goal_id,
        }

    def __repr__(self) -> str:
        return f"<Goal(id={self.id}, frequency={self.frequency}, status={self.status})>"


class GoalProgress(Base):
    """One progress entry against a goal."""

    __tablename__ = "goal_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    goal_id = Column(Integer, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    progress_value = Column(Float, default=1.0, nullable=False)
    notes = Column(Text, nullable=True)
    logged_at = Column(UTCDateTime(), default=utcnow, nullable=False)
