"""
User and UserProfile models for Shree.

The profile carries everything the agent loop and the proactive engine
need to act in the user's local time: timezone, wake/sleep time, work
hours and the per-feature notification switches.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from src.models.base import Base, UTCDateTime, utcnow


class User(Base):
    """
    A Shree account.

    Attributes:
        id: Primary key
        name: Display name
        email: Address used for escalated notifications and reminders
        created_at: Creation timestamp
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=True)
    email = Column(String(255), nullable=True, unique=True)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id})>"


class UserProfile(Base):
    """
    Personalization settings, one row per user.

    Times of day are stored as "HH:MM" strings in the user's timezone.
    """

    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    preferred_name = Column(String(120), nullable=True)
    timezone = Column(String(64), default="Asia/Kolkata", nullable=False)
    wake_time = Column(String(5), default="07:00", nullable=False)
    sleep_time = Column(String(5), default="23:00", nullable=False)
    work_start_time = Column(String(5), default="09:00", nullable=False)
    work_end_time = Column(String(5), default="18:00", nullable=False)

    proactive_enabled = Column(Boolean, default=True, nullable=False)
    wellbeing_enabled = Column(Boolean, default=True, nullable=False)
    morning_briefing_enabled = Column(Boolean, default=True, nullable=False)
    evening_summary_enabled = Column(Boolean, default=True, nullable=False)

    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "preferred_name": self.preferred_name,
            "timezone": self.timezone,
            "wake_time": self.wake_time,
            "sleep_time": self.sleep_time,
            "work_start_time": self.work_start_time,
            "work_end_time": self.work_end_time,
            "proactive_enabled": self.proactive_enabled,
            "wellbeing_enabled": self.wellbeing_enabled,
            "morning_briefing_enabled": self.morning_briefing_enabled,
            "evening_summary_enabled": self.evening_summary_enabled,
        }
