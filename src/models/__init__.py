"""
Models package for Shree.

This package exports all SQLAlchemy models.

Usage:
    from src.models import User, UserProfile, Goal, TaskPriority
    from src.models import ProtectedTimeBlock, ProactiveMessage, AgentExecution
"""

from src.models.base import Base, UTCDateTime, utcnow
from src.models.user import User, UserProfile
from src.models.goal import Goal, GoalFrequency, GoalProgress, GoalStatus, GoalType
from src.models.task import TaskPriority, TaskStatus
from src.models.protected_block import ProtectedTimeBlock
from src.models.proactive_message import MessageType, ProactiveMessage
from src.models.execution import AgentExecution, ExecutionStatus
from src.models.income import IncomeSource
from src.models.personal import Contact, Note, Reminder, ReminderStatus, WellbeingLog

__all__ = [
    # Base
    "Base",
    "UTCDateTime",
    "utcnow",
    # Core Models
    "User",
    "UserProfile",
    "Goal",
    "GoalProgress",
    "TaskPriority",
    "ProtectedTimeBlock",
    "ProactiveMessage",
    "AgentExecution",
    "IncomeSource",
    # Personal records
    "Contact",
    "Note",
    "Reminder",
    "WellbeingLog",
    # Enums
    "GoalFrequency",
    "GoalStatus",
    "GoalType",
    "TaskStatus",
    "MessageType",
    "ExecutionStatus",
    "ReminderStatus",
]
