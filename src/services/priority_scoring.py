"""
Priority scoring for tasks.

calculate_priority_score() is a deterministic weighted sum, evaluated in
a fixed order and clamped to [0, 100]:

    money impact      up to 40 (category fallback when no money)
    deadline urgency  up to 30 (nothing without a deadline)
    user priority     priority * 3
    time efficiency   up to 10 (needs both money and a time estimate)
    goal linkage      +5
    protected time    -50

The band thresholds below are part of the scoring contract.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

# (threshold, points), checked top to bottom
MONEY_BANDS: tuple[tuple[float, int], ...] = ((10000, 40), (5000, 35), (1000, 30))
MONEY_ANY_POSITIVE = 20

FALLBACK_INCOME_LINKED = 25
FALLBACK_LEARNING = 20
FALLBACK_JOB_RELATED = 15
FALLBACK_DEFAULT = 5
LEARNING_TYPES = frozenset({"study", "learning"})
JOB_RELATED_TYPES = frozenset({"job_related"})

# (hours remaining upper bound, points); overdue scores OVERDUE_POINTS
DEADLINE_BANDS: tuple[tuple[float, int], ...] = ((2, 28), (6, 25), (24, 20), (48, 15), (168, 10))
OVERDUE_POINTS = 30
DISTANT_DEADLINE_POINTS = 5

PRIORITY_WEIGHT = 3
DEFAULT_PRIORITY = 3

EFFICIENCY_BANDS: tuple[tuple[float, int], ...] = ((2000, 10), (1000, 8), (500, 6))
EFFICIENCY_FLOOR = 3

GOAL_BONUS = 5
PROTECTED_PENALTY = 50

MIN_SCORE = 0
MAX_SCORE = 100


class ScorableTask(Protocol):
    """Anything with the task facts the scorer reads (TaskPriority rows qualify)."""

    money_impact: float | None
    time_required_minutes: int | None
    deadline: datetime | None
    priority: int | None
    goal_id: int | None
    linked_income_source: str | None
    task_type: str | None


def _money_points(task: ScorableTask) -> int:
    money = task.money_impact or 0
    if money > 0:
        for threshold, points in MONEY_BANDS:
            if money >= threshold:
                return points
        return MONEY_ANY_POSITIVE
    if task.linked_income_source:
        return FALLBACK_INCOME_LINKED
    task_type = (task.task_type or "").lower()
    if task_type in LEARNING_TYPES:
        return FALLBACK_LEARNING
    if task_type in JOB_RELATED_TYPES:
        return FALLBACK_JOB_RELATED
    return FALLBACK_DEFAULT


def _deadline_points(deadline: datetime | None, now: datetime) -> int:
    if deadline is None:
        return 0
    hours_left = (deadline - now).total_seconds() / 3600
    if hours_left <= 0:
        return OVERDUE_POINTS
    for bound, points in DEADLINE_BANDS:
        if hours_left <= bound:
            return points
    return DISTANT_DEADLINE_POINTS


def _priority_points(priority: int | None) -> int:
    value = priority or DEFAULT_PRIORITY
    return min(max(value, 1), 5) * PRIORITY_WEIGHT


def _efficiency_points(task: ScorableTask) -> int:
    money = task.money_impact or 0
    minutes = task.time_required_minutes or 0
    if money <= 0 or minutes <= 0:
        return 0
    per_hour = money / (minutes / 60)
    for threshold, points in EFFICIENCY_BANDS:
        if per_hour >= threshold:
            return points
    return EFFICIENCY_FLOOR


def calculate_priority_score(
    task: ScorableTask,
    now: datetime,
    is_during_protected_time: bool = False,
) -> int:
    """
    Score a task 0-100.

    Args:
        task: Task facts (money, time estimate, deadline, priority, links)
        now: Reference time, same timezone awareness as task.deadline
        is_during_protected_time: Whether the deadline lands in a protected window

    Returns:
        Integer score clamped to [0, 100]
    """
    score = _money_points(task)
    score += _deadline_points(task.deadline, now)
    score += _priority_points(task.priority)
    score += _efficiency_points(task)
    if task.goal_id:
        score += GOAL_BONUS
    if is_during_protected_time:
        score -= PROTECTED_PENALTY
    return max(MIN_SCORE, min(MAX_SCORE, score))
