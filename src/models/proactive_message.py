"""
Proactive message log.

Every notification the trigger engine emits is stored here. The
trigger_reason column is the deduplication key ("deadline:42",
"birthday:7", "hydration", ...). Rows are immutable except for the
acknowledgment fields.
"""

from enum import StrEnum

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text

from src.models.base import Base, UTCDateTime, utcnow


class MessageType(StrEnum):
    DEADLINE_REMINDER = "deadline_reminder"
    BIRTHDAY_REMINDER = "birthday_reminder"
    GOAL_REMINDER = "goal_reminder"
    HYDRATION_REMINDER = "hydration_reminder"
    BREAK_REMINDER = "break_reminder"
    PROTECTED_TIME_START = "protected_time_start"
    MORNING_BRIEFING = "morning_briefing"
    EVENING_SUMMARY = "evening_summary"
    REMINDER = "reminder"


class ProactiveMessage(Base):
    """One notification event."""

    __tablename__ = "proactive_messages"
    __table_args__ = (
        Index("ix_proactive_messages_dedup", "user_id", "trigger_reason", "sent_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message_type = Column(String(40), nullable=False)
    content = Column(Text, nullable=False)
    trigger_reason = Column(String(120), nullable=False)
    priority = Column(Integer, default=50, nullable=False)
    sent_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    emailed = Column(Boolean, default=False, nullable=False)

    acknowledged = Column(Boolean, default=False, nullable=False)
    acknowledged_at = Column(UTCDateTime(), nullable=True)
    action_taken = Column(Text, nullable=True)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "message_type": self.message_type,
            "content": self.content,
            "trigger_reason": self.trigger_reason,
            "priority": self.priority,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "acknowledged": self.acknowledged,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            "action_taken": self.action_taken,
        }
