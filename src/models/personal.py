"""
Personal records the tools write and the engines read.

- Contact: people, with an optional birthday for birthday nudges
- Reminder: a one-off scheduled reminder (escalated by email if ignored)
- Note: a saved idea or snippet
- WellbeingLog: mood, energy, water and break entries
"""

from enum import StrEnum

from sqlalchemy import JSON, Column, Date, ForeignKey, Integer, String, Text

from src.models.base import Base, UTCDateTime, utcnow


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    relationship = Column(String(60), nullable=True)
    phone = Column(String(40), nullable=True)
    email = Column(String(255), nullable=True)
    birthday = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)


class ReminderStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("task_priorities.id", ondelete="SET NULL"), nullable=True)
    reminder_text = Column(Text, nullable=False)
    scheduled_time = Column(UTCDateTime(), nullable=False, index=True)
    status = Column(String(20), default=ReminderStatus.PENDING.value, nullable=False)
    last_reminder_sent = Column(UTCDateTime(), nullable=True)
    escalation_count = Column(Integer, default=0, nullable=False)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    created_at = Column(UTCDateTime(), default=utcnow, nullable=False)


class WellbeingLog(Base):
    __tablename__ = "wellbeing_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    log_type = Column(String(20), nullable=False)  # mood | energy | water | break | sleep
    value = Column(String(60), nullable=True)
    notes = Column(Text, nullable=True)
    logged_at = Column(UTCDateTime(), default=utcnow, nullable=False)
