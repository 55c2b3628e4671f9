"""
Context assembly for the assistant agent.

Builds the non-conversational instruction text sent with every model
call: who the user is, how they earn, which windows are protected (and
whether "now" is one of them), what they are working towards, their
latest wellbeing signal and the current local date/time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import WellbeingLog
from src.services.goal_service import GoalService
from src.services.income_service import IncomeService
from src.services.profile_service import ProfileService, local_now
from src.services.protected_time import ProtectedTimeService, TimeWindow, is_protected

BASE_INSTRUCTIONS = """You are Shree, a personal assistant that gets things done.
Use the tools to act on the user's behalf instead of describing what you would do.
When a tool result contains needs_time, needs_amount or needs_value, ask the user a short clarifying question.
When a tool result contains rate_limited or not_connected, tell the user plainly and suggest what to do.
Respect protected time: do not suggest low-priority work during a protected block.
Quote scheduled times back to the user exactly as the tool returned them."""

TOP_INCOME_SOURCES = 5
TOP_GOALS = 5


@dataclass
class AgentContext:
    """Everything the model should know about the user for this turn."""

    now_local: datetime
    timezone: str
    profile: dict[str, Any] = field(default_factory=dict)
    income_sources: list[dict[str, Any]] = field(default_factory=list)
    protected_blocks: list[dict[str, Any]] = field(default_factory=list)
    in_protected_time: bool = False
    goals: list[str] = field(default_factory=list)
    recent_mood: str | None = None

    def render(self) -> str:
        lines = [BASE_INSTRUCTIONS, "", "## User context"]
        lines.append(f"Current time: {self.now_local.strftime('%A, %d %B %Y %H:%M')} ({self.timezone})")

        name = self.profile.get("preferred_name")
        if name:
            lines.append(f"Name: {name}")
        lines.append(
            f"Day: wakes {self.profile.get('wake_time')}, sleeps {self.profile.get('sleep_time')}, "
            f"works {self.profile.get('work_start_time')}-{self.profile.get('work_end_time')}"
        )

        if self.income_sources:
            lines.append("Top income sources (by hourly rate):")
            for source in self.income_sources:
                rate = source.get("hourly_rate")
                rate_text = f"₹{rate:g}/hr" if rate else "rate unknown"
                lines.append(f"- {source['source_name']}: {rate_text}, total ₹{source['total_earned']:g}")

        if self.protected_blocks:
            lines.append("Protected time blocks:")
            for block in self.protected_blocks:
                days = ", ".join(block["days_of_week"])
                lines.append(f"- {block['name']}: {block['start_time']}-{block['end_time']} ({days})")
        lines.append(
            "The user is in protected time right now." if self.in_protected_time
            else "The user is not in protected time right now."
        )

        if self.goals:
            lines.append("Active goals: " + "; ".join(self.goals))
        if self.recent_mood:
            lines.append(f"Most recent mood: {self.recent_mood}")
        return "\n".join(lines)


class ContextBuilder:
    """Reads the user's stores and produces an AgentContext."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def build(self, user_id: int, now: datetime | None = None) -> AgentContext:
        profile = await ProfileService(self.session).get_or_create_profile(user_id)
        now_local = local_now(profile, now or datetime.now(UTC))

        blocks = await ProtectedTimeService(self.session).list_active(user_id)
        windows = [TimeWindow.from_block(block) for block in blocks]
        sources = await IncomeService(self.session).list_sources(user_id, limit=TOP_INCOME_SOURCES)
        goals = await GoalService(self.session).list_goals(user_id)

        mood = await self.session.execute(
            select(WellbeingLog)
            .where(WellbeingLog.user_id == user_id, WellbeingLog.log_type == "mood")
            .order_by(WellbeingLog.logged_at.desc())
            .limit(1)
        )
        latest_mood = mood.scalar_one_or_none()

        return AgentContext(
            now_local=now_local,
            timezone=profile.timezone,
            profile=profile.to_dict(),
            income_sources=[source.to_dict() for source in sources],
            protected_blocks=[block.to_dict() for block in blocks],
            in_protected_time=is_protected(windows, now_local),
            goals=[goal.title for goal in goals[:TOP_GOALS]],
            recent_mood=latest_mood.value if latest_mood is not None else None,
        )
