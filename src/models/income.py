"""Income sources, keyed by (user, source name)."""

from sqlalchemy import Column, Float, ForeignKey, Integer, String, UniqueConstraint

from src.models.base import Base, UTCDateTime, utcnow


class IncomeSource(Base):
    """
    Accumulated earnings from one source.

    average_amount, hourly_rate and priority_score are derived and
    rewritten on every income report. priority_score is relative to the
    user's best hourly rate (best source = 100).
    """

    __tablename__ = "income_sources"
    __table_args__ = (UniqueConstraint("user_id", "source_name", name="uq_income_source_user_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    source_name = Column(String(120), nullable=False)
    total_earned = Column(Float, default=0.0, nullable=False)
    occurrence_count = Column(Integer, default=0, nullable=False)
    average_amount = Column(Float, default=0.0, nullable=False)
    hours_spent = Column(Float, default=0.0, nullable=False)
    hourly_rate = Column(Float, nullable=True)
    priority_score = Column(Integer, default=0, nullable=False)
    last_earned_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "source_name": self.source_name,
            "total_earned": self.total_earned,
            "occurrence_count": self.occurrence_count,
            "average_amount": self.average_amount,
            "hourly_rate": self.hourly_rate,
            "priority_score": self.priority_score,
        }
