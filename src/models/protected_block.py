"""Protected (interruption-free) time blocks."""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text

from src.models.base import Base, UTCDateTime, utcnow

DEFAULT_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]


class ProtectedTimeBlock(Base):
    """
    A recurring window during which low-priority work is penalized.

    days_of_week holds lowercase weekday names, or ["daily"].
    start_time / end_time are "HH:MM" in the user's timezone.
    """

    __tablename__ = "protected_time_blocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    purpose = Column(Text, nullable=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    days_of_week = Column(JSON, default=lambda: list(DEFAULT_DAYS), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "purpose": self.purpose,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "days_of_week": list(self.days_of_week or []),
            "is_active": self.is_active,
        }
