"""
Streak tracking for habit goals.

update_streak() is the pure rule applied when progress is logged:

    periods since last progress == 0  -> unchanged
    periods since last progress == 1  -> streak + 1
    more, or no prior progress        -> streak = 1 (broken if it was > 0)

A period is a calendar day for daily goals and an ISO week (Monday
start) for weekly goals, both counted in the user's timezone.
best_streak is max(best_streak, streak) after every update.

decay_streaks() is the daily sweep: active habit goals that missed a
whole period get their streak reset to 0. Running it twice is harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import Goal, GoalFrequency, GoalStatus, UserProfile
from src.services.profile_service import user_zone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    streak: int
    best_streak: int
    broken: bool

    def to_dict(self) -> dict[str, object]:
        return {"streak": self.streak, "best_streak": self.best_streak, "broken": self.broken}


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def periods_between(frequency: str, earlier: datetime, later: datetime, tz: tzinfo = UTC) -> int:
    """Whole cadence periods from `earlier` to `later` in the given timezone."""
    first = earlier.astimezone(tz).date()
    second = later.astimezone(tz).date()
    if frequency == GoalFrequency.WEEKLY.value:
        return (_week_start(second) - _week_start(first)).days // 7
    return (second - first).days


def update_streak(goal: Goal, progress_at: datetime, tz: tzinfo = UTC) -> StreakUpdate:
    """
    Compute the streak after logging progress at `progress_at`.

    Does not mutate the goal. Progress logged before the last recorded
    progress (backfill) counts as the same period.
    """
    previous = goal.streak_count or 0
    best = goal.best_streak or 0

    if goal.last_progress_at is None:
        streak, broken = 1, False
    else:
        elapsed = periods_between(goal.frequency, goal.last_progress_at, progress_at, tz)
        if elapsed <= 0:
            streak, broken = previous, False
        elif elapsed == 1:
            streak, broken = previous + 1, False
        else:
            streak, broken = 1, previous > 0

    return StreakUpdate(streak=streak, best_streak=max(best, streak), broken=broken)


def apply_streak(goal: Goal, update: StreakUpdate) -> None:
    goal.streak_count = update.streak
    goal.best_streak = update.best_streak


async def decay_streaks(session: AsyncSession, now: datetime | None = None) -> dict[str, int]:
    """
    Reset streaks of active habit goals whose last progress is more than
    one full cadence period ago.

    Returns:
        {"daily_reset": n, "weekly_reset": m}
    """
    now = now or datetime.now(UTC)
    result = await session.execute(
        select(Goal, UserProfile)
        .outerjoin(UserProfile, UserProfile.user_id == Goal.user_id)
        .where(
            Goal.status == GoalStatus.ACTIVE.value,
            Goal.frequency.in_([GoalFrequency.DAILY.value, GoalFrequency.WEEKLY.value]),
            Goal.streak_count > 0,
        )
    )

    counts = {"daily_reset": 0, "weekly_reset": 0}
    for goal, profile in result.all():
        if goal.last_progress_at is not None:
            if periods_between(goal.frequency, goal.last_progress_at, now, user_zone(profile)) <= 1:
                continue
        goal.streak_count = 0
        counts[f"{goal.frequency}_reset"] += 1

    await session.commit()
    logger.info("Streak decay: %s daily, %s weekly reset", counts["daily_reset"], counts["weekly_reset"])
    return counts
