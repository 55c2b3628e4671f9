"""
Services for Shree.

Services:
    - TaskService: Scored tasks and the daily schedule
    - ProtectedTimeService: Protected time blocks and the window resolver
    - GoalService: Goals, progress and streaks
    - IncomeService: Income sources and money/time analysis
    - ProfileService: User profiles and local time
    - RedisService: Async Redis connection and pub/sub

Scoring, streak and window rules live as plain functions in
priority_scoring, streaks and protected_time.
"""

from .goal_service import GoalService, ProgressResult
from .income_service import IncomeService
from .priority_scoring import calculate_priority_score
from .profile_service import ProfileService, local_now
from .protected_time import ProtectedTimeService, TimeWindow, is_protected
from .redis_service import RedisService
from .streaks import decay_streaks, update_streak
from .task_service import DailySchedule, TaskService

__all__ = [
    "TaskService",
    "DailySchedule",
    "ProtectedTimeService",
    "TimeWindow",
    "is_protected",
    "GoalService",
    "ProgressResult",
    "IncomeService",
    "ProfileService",
    "local_now",
    "RedisService",
    "calculate_priority_score",
    "decay_streaks",
    "update_streak",
]
