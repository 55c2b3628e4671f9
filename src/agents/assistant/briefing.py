"""
Morning briefing and evening summary content.

collect_morning() / collect_evening() read the day's data for a user;
BriefingWriter turns it into a short message, asking the model provider
for a summary and falling back to a fixed template when the provider is
missing, slow or failing.

Usage:
    data = await collect_morning(session, user_id, now_local)
    text = await BriefingWriter(provider).write(data)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any

import structlog
from sqlalchemy import and_, extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.agents.assistant.model_client import ModelProvider
from src.lib.exceptions import ShreeException
from src.models import Contact, Reminder, ReminderStatus
from src.services.goal_service import GoalService
from src.services.task_service import TaskService

logger = structlog.get_logger()

MORNING = "morning"
EVENING = "evening"

TOP_TASKS = 5
TOMORROW_TASKS = 3

BRIEFING_INSTRUCTIONS = (
    "Write a short, warm {kind} message for the user from the JSON data below. "
    "Use at most 8 lines, plain text, no markdown headings. Mention times in the user's local time."
)


@dataclass
class BriefingData:
    """Raw material for one briefing."""

    kind: str
    date: str
    name: str | None = None
    top_tasks: list[dict[str, Any]] = field(default_factory=list)
    protected_blocks: list[dict[str, Any]] = field(default_factory=list)
    reminders: list[dict[str, Any]] = field(default_factory=list)
    birthdays: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    tomorrow: list[str] = field(default_factory=list)
    open_habits: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "date": self.date,
            "name": self.name,
            "top_tasks": self.top_tasks,
            "protected_blocks": self.protected_blocks,
            "reminders": self.reminders,
            "birthdays": self.birthdays,
            "completed": self.completed,
            "tomorrow": self.tomorrow,
            "open_habits": self.open_habits,
        }


def _day_bounds(now_local: datetime) -> tuple[datetime, datetime]:
    start = datetime.combine(now_local.date(), time.min, tzinfo=now_local.tzinfo)
    return start, start + timedelta(days=1)


async def contacts_with_birthday(session: AsyncSession, user_id: int, day: date) -> list[Contact]:
    """Contacts whose birthday falls on the month and day of `day`."""
    result = await session.execute(
        select(Contact).where(
            and_(
                Contact.user_id == user_id,
                Contact.birthday.is_not(None),
                extract("month", Contact.birthday) == day.month,
                extract("day", Contact.birthday) == day.day,
            )
        )
    )
    return list(result.scalars().all())


async def collect_morning(
    session: AsyncSession, user_id: int, now_local: datetime, name: str | None = None
) -> BriefingData:
    """Today's top tasks, protected blocks, reminders and birthdays."""
    schedule = await TaskService(session).daily_schedule(user_id, now_local)
    tasks = await TaskService(session).list_prioritized(user_id, limit=TOP_TASKS)
    start, end = _day_bounds(now_local)

    result = await session.execute(
        select(Reminder)
        .where(
            Reminder.user_id == user_id,
            Reminder.status == ReminderStatus.PENDING.value,
            Reminder.scheduled_time >= start,
            Reminder.scheduled_time < end,
        )
        .order_by(Reminder.scheduled_time)
    )
    reminders = [
        {
            "text": reminder.reminder_text,
            "time": reminder.scheduled_time.astimezone(now_local.tzinfo).strftime("%H:%M"),
        }
        for reminder in result.scalars().all()
    ]

    return BriefingData(
        kind=MORNING,
        date=now_local.date().isoformat(),
        name=name,
        top_tasks=[{"title": t.title, "priority_score": t.priority_score} for t in tasks],
        protected_blocks=[
            {"name": b["name"], "start_time": b["start_time"], "end_time": b["end_time"]}
            for b in schedule.protected_blocks
        ],
        reminders=reminders,
        birthdays=[c.name for c in await contacts_with_birthday(session, user_id, now_local.date())],
    )


async def collect_evening(
    session: AsyncSession, user_id: int, now_local: datetime, name: str | None = None
) -> BriefingData:
    """What got done today, open daily habits and tomorrow's top tasks."""
    start, end = _day_bounds(now_local)
    tasks = TaskService(session)
    completed = await tasks.completed_between(user_id, start, end)
    upcoming = await tasks.list_prioritized(user_id, limit=TOMORROW_TASKS)
    open_habits = await GoalService(session).daily_goals_without_progress(user_id, start)

    return BriefingData(
        kind=EVENING,
        date=now_local.date().isoformat(),
        name=name,
        completed=[t.title for t in completed],
        tomorrow=[t.title for t in upcoming],
        open_habits=[g.title for g in open_habits],
    )


def render_template(data: BriefingData) -> str:
    """Deterministic briefing text, used when the model is unavailable."""
    greeting = f", {data.name}" if data.name else ""
    if data.kind == MORNING:
        lines = [f"Good morning{greeting}! Here's your day ({data.date})."]
        if data.top_tasks:
            lines.append("Top tasks: " + "; ".join(t["title"] for t in data.top_tasks))
        else:
            lines.append("No pending tasks. A clear day.")
        if data.protected_blocks:
            lines.append(
                "Protected time: "
                + "; ".join(f"{b['name']} {b['start_time']}-{b['end_time']}" for b in data.protected_blocks)
            )
        if data.reminders:
            lines.append("Reminders: " + "; ".join(f"{r['time']} {r['text']}" for r in data.reminders))
        if data.birthdays:
            lines.append("Birthdays today: " + ", ".join(data.birthdays))
        return "\n".join(lines)

    lines = [f"Good evening{greeting}. Here's how today went."]
    if data.completed:
        lines.append(f"Completed ({len(data.completed)}): " + "; ".join(data.completed))
    else:
        lines.append("No tasks were marked complete today.")
    if data.open_habits:
        lines.append("Habits still open: " + ", ".join(data.open_habits))
    if data.tomorrow:
        lines.append("Tomorrow's top tasks: " + "; ".join(data.tomorrow))
    return "\n".join(lines)


class BriefingWriter:
    """Summarizes BriefingData with the model, or falls back to the template."""

    def __init__(self, provider: ModelProvider | None = None, timeout_seconds: float = 30.0) -> None:
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    async def write(self, data: BriefingData) -> str:
        if self.provider is None:
            return render_template(data)

        kind = "morning briefing" if data.kind == MORNING else "evening summary"
        messages = [{"role": "user", "content": json.dumps(data.to_dict(), ensure_ascii=False)}]
        try:
            response = await asyncio.wait_for(
                self.provider.complete(BRIEFING_INSTRUCTIONS.format(kind=kind), [], messages),
                timeout=self.timeout_seconds,
            )
        except (ShreeException, TimeoutError) as e:
            logger.warning("briefing_model_fallback", kind=data.kind, error=str(e))
            return render_template(data)

        return response.text or render_template(data)
