"""
Agent execution records.

One row per run of the agent loop. Created in "running" state and
updated exactly once when the run completes or fails. tool_invocations
is the ordered list of {tool, arguments, result} dicts.
"""

from enum import StrEnum

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Text

from src.models.base import Base, UTCDateTime, utcnow


class ExecutionStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentExecution(Base):
    __tablename__ = "agent_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(40), default="chat", nullable=False)
    status = Column(String(20), default=ExecutionStatus.RUNNING.value, nullable=False)
    input_message = Column(Text, nullable=True)
    tool_invocations = Column(JSON, default=list, nullable=False)
    result_text = Column(Text, nullable=True)
    error = Column(Text, nullable=True)
    rounds = Column(Integer, default=0, nullable=False)
    started_at = Column(UTCDateTime(), default=utcnow, nullable=False)
    completed_at = Column(UTCDateTime(), nullable=True)
