"""
Task Service for Shree.

Adds, scores, lists and completes task-priority records. Scores come
from calculate_priority_score(); the protected-time flag is evaluated
on the deadline expressed in the user's timezone.

Usage:
    service = TaskService(session)
    task = await service.add_task(user_id, "Send invoice", money_impact=5000)
    top = await service.list_prioritized(user_id, limit=5)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.lib.exceptions import NotFoundError, ValidationError
from src.models import TaskPriority, TaskStatus
from src.services.priority_scoring import calculate_priority_score
from src.services.profile_service import ProfileService, user_zone
from src.services.protected_time import TimeWindow, is_protected, ProtectedTimeService

logger = logging.getLogger(__name__)

HIGH_PRIORITY_THRESHOLD = 70
MEDIUM_PRIORITY_THRESHOLD = 40


@dataclass
class DailySchedule:
    """Tasks bucketed by score plus today's protected blocks."""

    date: str
    high_priority: list[dict[str, Any]] = field(default_factory=list)
    medium_priority: list[dict[str, Any]] = field(default_factory=list)
    low_priority: list[dict[str, Any]] = field(default_factory=list)
    protected_blocks: list[dict[str, Any]] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "high_priority": self.high_priority,
            "medium_priority": self.medium_priority,
            "low_priority": self.low_priority,
            "protected_blocks": self.protected_blocks,
            "suggestions": self.suggestions,
        }


class TaskService:
    """Task-priority records for one database session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _windows(self, user_id: int) -> list[TimeWindow]:
        return await ProtectedTimeService(self.session).active_windows(user_id)

    async def _deadline_protected(self, user_id: int, deadline: datetime | None, windows: list[TimeWindow]) -> bool:
        if deadline is None or not windows:
            return False
        profile = await ProfileService(self.session).get_or_create_profile(user_id)
        return is_protected(windows, deadline.astimezone(user_zone(profile)))

    async def add_task(
        self,
        user_id: int,
        title: str,
        task_type: str | None = None,
        money_impact: float | None = None,
        time_required_minutes: int | None = None,
        deadline: datetime | None = None,
        priority: int | None = None,
        goal_id: int | None = None,
        linked_income_source: str | None = None,
        now: datetime | None = None,
    ) -> TaskPriority:
        """
        Create a task and score it.

        Raises:
            ValidationError: If priority is outside 1-5 or the deadline is naive
        """
        if priority is not None and not 1 <= priority <= 5:
            raise ValidationError("priority must be between 1 and 5")
        if deadline is not None and deadline.tzinfo is None:
            raise ValidationError("deadline must be timezone-aware")

        task = TaskPriority(
            user_id=user_id,
            title=title,
            task_type=task_type or "general",
            money_impact=money_impact,
            time_required_minutes=time_required_minutes,
            deadline=deadline,
            priority=priority or 3,
            goal_id=goal_id,
            linked_income_source=linked_income_source,
            status=TaskStatus.PENDING.value,
        )
        windows = await self._windows(user_id)
        task.is_protected_time = await self._deadline_protected(user_id, deadline, windows)
        task.priority_score = calculate_priority_score(task, now or datetime.now(UTC), task.is_protected_time)

        self.session.add(task)
        await self.session.commit()
        logger.info("Task %s added for user %s with score %s", task.id, user_id, task.priority_score)
        return task

    async def recalculate_priorities(self, user_id: int, now: datetime | None = None, commit: bool = True) -> int:
        """Re-score every pending task. Returns the number of tasks touched."""
        now = now or datetime.now(UTC)
        windows = await self._windows(user_id)
        tasks = await self.list_pending(user_id)
        for task in tasks:
            task.is_protected_time = await self._deadline_protected(user_id, task.deadline, windows)
            task.priority_score = calculate_priority_score(task, now, task.is_protected_time)
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()
        return len(tasks)

    async def get_task(self, user_id: int, task_id: int) -> TaskPriority:
        result = await self.session.execute(
            select(TaskPriority).where(TaskPriority.id == task_id, TaskPriority.user_id == user_id)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def complete_task(self, user_id: int, task_id: int, now: datetime | None = None) -> TaskPriority:
        task = await self.get_task(user_id, task_id)
        task.status = TaskStatus.COMPLETED.value
        task.completed_at = now or datetime.now(UTC)
        await self.session.commit()
        return task

    async def list_pending(self, user_id: int) -> list[TaskPriority]:
        result = await self.session.execute(
            select(TaskPriority).where(
                TaskPriority.user_id == user_id, TaskPriority.status == TaskStatus.PENDING.value
            )
        )
        return list(result.scalars().all())

    async def list_prioritized(self, user_id: int, limit: int | None = None) -> list[TaskPriority]:
        """Pending tasks, highest score first, earlier deadline breaking ties."""
        tasks = await self.list_pending(user_id)
        far_future = datetime.max.replace(tzinfo=UTC)
        tasks.sort(key=lambda t: (-t.priority_score, t.deadline or far_future))
        return tasks[:limit] if limit is not None else tasks

    async def pending_due_within(self, user_id: int, now: datetime, horizon: timedelta) -> list[TaskPriority]:
        """Pending tasks whose deadline is between now and now + horizon."""
        result = await self.session.execute(
            select(TaskPriority)
            .where(
                TaskPriority.user_id == user_id,
                TaskPriority.status == TaskStatus.PENDING.value,
                TaskPriority.deadline.is_not(None),
                TaskPriority.deadline > now,
                TaskPriority.deadline <= now + horizon,
            )
            .order_by(TaskPriority.deadline)
        )
        return list(result.scalars().all())

    async def completed_between(self, user_id: int, start: datetime, end: datetime) -> list[TaskPriority]:
        result = await self.session.execute(
            select(TaskPriority).where(
                TaskPriority.user_id == user_id,
                TaskPriority.status == TaskStatus.COMPLETED.value,
                TaskPriority.completed_at >= start,
                TaskPriority.completed_at < end,
            )
        )
        return list(result.scalars().all())

    async def daily_schedule(self, user_id: int, now_local: datetime) -> DailySchedule:
        """Bucket pending tasks by score and list today's protected blocks."""
        schedule = DailySchedule(date=now_local.date().isoformat())
        for task in await self.list_prioritized(user_id):
            entry = {"title": task.title, "priority_score": task.priority_score}
            if task.priority_score >= HIGH_PRIORITY_THRESHOLD:
                entry["deadline"] = task.deadline.isoformat() if task.deadline else None
                entry["money_impact"] = task.money_impact
                schedule.high_priority.append(entry)
            elif task.priority_score >= MEDIUM_PRIORITY_THRESHOLD:
                schedule.medium_priority.append(entry)
            else:
                schedule.low_priority.append(entry)

        blocks = await ProtectedTimeService(self.session).list_active(user_id)
        weekday = now_local.strftime("%A").lower()
        for block in blocks:
            if TimeWindow.from_block(block).applies_on(weekday):
                schedule.protected_blocks.append(block.to_dict())

        if len(schedule.high_priority) > 3:
            schedule.suggestions.append(
                f"You have {len(schedule.high_priority)} high-priority tasks. Focus on the top 3 first."
            )
        if schedule.protected_blocks:
            schedule.suggestions.append(
                f"{len(schedule.protected_blocks)} protected block(s) today. Keep them interruption-free."
            )
        return schedule
