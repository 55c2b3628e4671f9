"""
Task-priority records for Shree.

A TaskPriority row is a schedulable unit of work with its computed
0-100 score. The score is recomputed whenever the task's deadline or
money impact changes, or when the user's protected blocks change.
"""

from enum import StrEnum

from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, Integer, String

from src.models.base import Base, UTCDateTime, utcnow


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class TaskPriority(Base):
    """
    A prioritized task.

    Attributes:
        title: What to do
        task_type: Free category ("job", "study", "learning", "job_related", ...)
        money_impact: Estimated money value of doing it
        time_required_minutes: Estimated effort
        deadline: Optional due time (UTC)
        priority: User-set priority 1-5
        goal_id: Optional linked goal
        linked_income_source: Optional income source name
        is_protected_time: Whether the deadline lands in a protected block
        priority_score: Computed 0-100 score
        status: pending | completed
    """

    __tablename__ = "task_priorities"
    __table_args__ = (
        Index("ix_task_priorities_user_status_score", "user_id", "status", "priority_score"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = Column(Integer, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    task_type = Column(String(40), nullable=True)
    money_impact = Column(Float, nullable=True)
    time_required_minutes = Column(Integer, nullable=True)
    deadline = Column(UTCDateTime(), nullable=True)
    priority = Column(Integer, default=3, nullable=False)
    linked_income_source = Column(String(120), nullable=True)

    is_protected_time = Column(Boolean, default=False, nullable=False)
    priority_score = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=TaskStatus.PENDING.value, nullable=False)

    completed_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "task_type": self.task_type,
            "money_impact": self.money_impact,
            "time_required_minutes": self.time_required_minutes,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "priority": self.priority,
            "priority_score": self.priority_score,
            "is_protected_time": self.is_protected_time,
            "status": self.status,
        }

    def __repr__(self) -> str:
        return f"<TaskPriority(id={self.id}, score={self.priority_score}, status={self.status})>"
