"""
Goal Service for Shree.

Creates goals, keeps the parent tree acyclic, logs progress and applies
the streak rule for habit goals.

Usage:
    service = GoalService(session)
    goal = await service.create_goal(user_id, "Read 20 pages", frequency="daily")
    result = await service.log_progress(user_id, goal.id, 1)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.lib.exceptions import NotFoundError, ValidationError
from src.models import Goal, GoalFrequency, GoalProgress, GoalStatus, GoalType
from src.services.profile_service import ProfileService, user_zone
from src.services.streaks import apply_streak, update_streak

logger = logging.getLogger(__name__)

_VALID_TYPES = {t.value for t in GoalType}
_VALID_FREQUENCIES = {f.value for f in GoalFrequency}


@dataclass
class ProgressResult:
    goal_id: int
    progress_value: float
    new_total: float
    target: float | None
    completed: bool
    streak: int
    best_streak: int
    streak_broken: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "goal_id": self.goal_id,
            "progress_value": self.progress_value,
            "new_total": self.new_total,
            "target": self.target,
            "completed": self.completed,
            "streak": self.streak,
            "best_streak": self.best_streak,
            "streak_broken": self.streak_broken,
        }


class GoalService:
    """Goal CRUD and progress logging for one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_goal(
        self,
        user_id: int,
        title: str,
        goal_type: str = GoalType.SHORT_TERM.value,
        frequency: str | None = None,
        target_value: float | None = None,
        unit: str | None = None,
        description: str | None = None,
        parent_goal_id: int | None = None,
        deadline: datetime | None = None,
    ) -> Goal:
        """
        Create a goal.

        Habit types imply their frequency when none is given.

        Raises:
            ValidationError: Unknown type/frequency or negative target
            NotFoundError: parent_goal_id does not belong to the user
        """
        if goal_type not in _VALID_TYPES:
            raise ValidationError(f"Unknown goal type: {goal_type}")
        if frequency is None:
            frequency = {
                GoalType.DAILY_HABIT.value: GoalFrequency.DAILY.value,
                GoalType.WEEKLY_HABIT.value: GoalFrequency.WEEKLY.value,
            }.get(goal_type, GoalFrequency.ONE_TIME.value)
        if frequency not in _VALID_FREQUENCIES:
            raise ValidationError(f"Unknown frequency: {frequency}")
        if target_value is not None and target_value < 0:
            raise ValidationError("target_value cannot be negative")
        if parent_goal_id is not None:
            await self.get_goal(user_id, parent_goal_id)

        goal = Goal(
            user_id=user_id,
            title=title,
            description=description,
            goal_type=goal_type,
            frequency=frequency,
            target_value=target_value,
            current_value=0.0,
            unit=unit,
            parent_goal_id=parent_goal_id,
            deadline=deadline,
            streak_count=0,
            best_streak=0,
            status=GoalStatus.ACTIVE.value,
        )
        self.session.add(goal)
        await self.session.commit()
        logger.info("Goal %s created for user %s", goal.id, user_id)
        return goal

    async def get_goal(self, user_id: int, goal_id: int) -> Goal:
        result = await self.session.execute(select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id))
        goal = result.scalar_one_or_none()
        if goal is None:
            raise NotFoundError(f"Goal {goal_id} not found")
        return goal

    async def find_by_title(self, user_id: int, title: str) -> Goal:
        """Case-insensitive lookup among active goals; exact match beats substring."""
        result = await self.session.execute(
            select(Goal).where(Goal.user_id == user_id, Goal.status == GoalStatus.ACTIVE.value)
        )
        goals = list(result.scalars().all())
        wanted = title.strip().lower()
        for goal in goals:
            if goal.title.lower() == wanted:
                return goal
        for goal in goals:
            if wanted in goal.title.lower():
                return goal
        raise NotFoundError(f"No active goal matching {title!r}")

    async def set_parent(self, user_id: int, goal_id: int, parent_goal_id: int | None) -> Goal:
        """
        Re-parent a goal.

        Raises:
            ValidationError: If the new parent is the goal itself or one of its descendants
        """
        goal = await self.get_goal(user_id, goal_id)
        if parent_goal_id is None:
            goal.parent_goal_id = None
            await self.session.commit()
            return goal

        ancestor: Goal | None = await self.get_goal(user_id, parent_goal_id)
        seen: set[int] = set()
        while ancestor is not None:
            if ancestor.id == goal.id:
                raise ValidationError("A goal cannot be nested under itself or its descendants")
            if ancestor.id in seen:
                break
            seen.add(ancestor.id)
            ancestor = (
                await self.get_goal(user_id, ancestor.parent_goal_id)
                if ancestor.parent_goal_id is not None
                else None
            )

        goal.parent_goal_id = parent_goal_id
        await self.session.commit()
        return goal

    async def log_progress(
        self,
        user_id: int,
        goal_id: int,
        progress_value: float = 1.0,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> ProgressResult:
        """
        Add progress to a goal, update its streak and complete it at target.

        Raises:
            ValidationError: Negative progress (current_value never decreases)
            NotFoundError: Unknown goal
        """
        if progress_value < 0:
            raise ValidationError("progress_value cannot be negative")
        now = now or datetime.now(UTC)
        goal = await self.get_goal(user_id, goal_id)
        profile = await ProfileService(self.session).get_or_create_profile(user_id)

        self.session.add(
            GoalProgress(goal_id=goal.id, user_id=user_id, progress_value=progress_value, notes=notes, logged_at=now)
        )
        goal.current_value = (goal.current_value or 0.0) + progress_value

        broken = False
        if goal.is_habit:
            update = update_streak(goal, now, user_zone(profile))
            apply_streak(goal, update)
            broken = update.broken
        goal.last_progress_at = now

        completed = goal.target_value is not None and goal.current_value >= goal.target_value
        if completed and goal.status == GoalStatus.ACTIVE.value:
            goal.status = GoalStatus.COMPLETED.value
            goal.completed_at = now

        await self.session.commit()
        if broken:
            logger.info("Streak broken on goal %s for user %s", goal.id, user_id)

        return ProgressResult(
            goal_id=goal.id,
            progress_value=progress_value,
            new_total=goal.current_value,
            target=goal.target_value,
            completed=completed,
            streak=goal.streak_count,
            best_streak=goal.best_streak,
            streak_broken=broken,
        )

    async def list_goals(self, user_id: int, status: str | None = GoalStatus.ACTIVE.value) -> list[Goal]:
        query = select(Goal).where(Goal.user_id == user_id)
        if status:
            query = query.where(Goal.status == status)
        result = await self.session.execute(query.order_by(Goal.created_at.desc()))
        return list(result.scalars().all())

    async def daily_goals_without_progress(self, user_id: int, day_start: datetime) -> list[Goal]:
        """Active daily goals with no progress since `day_start` (a UTC instant)."""
        result = await self.session.execute(
            select(Goal).where(
                Goal.user_id == user_id,
                Goal.status == GoalStatus.ACTIVE.value,
                Goal.frequency == GoalFrequency.DAILY.value,
                (Goal.last_progress_at.is_(None)) | (Goal.last_progress_at < day_start),
            )
        )
        return list(result.scalars().all())

    async def goals_summary(self, user_id: int) -> dict[str, Any]:
        counts = await self.session.execute(
            select(Goal.status, func.count(Goal.id)).where(Goal.user_id == user_id).group_by(Goal.status)
        )
        by_status = {status: count for status, count in counts.all()}
        streaks = await self.session.execute(
            select(Goal)
            .where(Goal.user_id == user_id, Goal.status == GoalStatus.ACTIVE.value, Goal.streak_count > 0)
            .order_by(Goal.streak_count.desc())
            .limit(5)
        )
        return {
            "active": by_status.get(GoalStatus.ACTIVE.value, 0),
            "completed": by_status.get(GoalStatus.COMPLETED.value, 0),
            "top_streaks": [
                {"title": g.title, "streak": g.streak_count, "best": g.best_streak} for g in streaks.scalars().all()
            ],
        }
