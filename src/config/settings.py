"""
Runtime settings for Shree.

All configuration comes from `SHREE_*` environment variables with sane
defaults for local development. Settings are frozen dataclasses so they
can be shared freely between the agent loop, the tool layer and the
Celery worker.

Usage:
    from src.config.settings import get_settings

    settings = get_settings()
    settings.max_tool_rounds  # 5
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache

from src.lib.exceptions import ConfigurationError


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_hours(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a comma separated list of hours") from exc


# =============================================================================
# Notification Policy
# =============================================================================


@dataclass(frozen=True)
class NotificationPolicy:
    """
    Deduplication windows and trigger timing for proactive messages.

    Daily categories (birthday, goal check-in, briefings) dedup on the
    user's calendar day instead of a rolling window.
    """

    deadline_dedup: timedelta = timedelta(hours=4)
    hydration_dedup: timedelta = timedelta(hours=3)
    break_dedup: timedelta = timedelta(minutes=90)
    protected_start_dedup: timedelta = timedelta(hours=1)
    deadline_horizon: timedelta = timedelta(hours=24)
    protected_lead_min: timedelta = timedelta(minutes=5)
    protected_lead_max: timedelta = timedelta(minutes=15)
    hydration_hours: tuple[int, ...] = (10, 14, 17)
    goal_checkin_hour: int = 20
    escalation_threshold: int = 90
    reminder_escalation_grace: timedelta = timedelta(minutes=2)

    @classmethod
    def from_env(cls) -> NotificationPolicy:
        return cls(
            deadline_dedup=timedelta(minutes=_env_int("SHREE_DEDUP_DEADLINE_MINUTES", 240)),
            hydration_dedup=timedelta(minutes=_env_int("SHREE_DEDUP_HYDRATION_MINUTES", 180)),
            break_dedup=timedelta(minutes=_env_int("SHREE_DEDUP_BREAK_MINUTES", 90)),
            protected_start_dedup=timedelta(minutes=_env_int("SHREE_DEDUP_PROTECTED_MINUTES", 60)),
            hydration_hours=_env_hours("SHREE_HYDRATION_HOURS", (10, 14, 17)),
            goal_checkin_hour=_env_int("SHREE_GOAL_CHECKIN_HOUR", 20),
            escalation_threshold=_env_int("SHREE_ESCALATION_THRESHOLD", 90),
        )


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration."""

    database_url: str = "sqlite+aiosqlite:///./shree.db"
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    anthropic_api_key: str | None = None
    model_name: str = "claude-sonnet-4-20250514"
    model_max_tokens: int = 4096
    model_timeout_seconds: float = 60.0
    tool_timeout_seconds: float = 30.0
    max_tool_rounds: int = 5

    social_daily_post_limit: int = 150
    social_window: timedelta = timedelta(hours=24)

    firecrawl_api_key: str | None = None
    gmail_access_token: str | None = None
    linkedin_access_token: str | None = None
    linkedin_person_urn: str | None = None
    sheets_access_token: str | None = None

    default_timezone: str = "Asia/Kolkata"
    dev_mode: bool = False
    notifications: NotificationPolicy = field(default_factory=NotificationPolicy)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment."""
        max_rounds = _env_int("SHREE_MAX_TOOL_ROUNDS", 5)
        if max_rounds < 1:
            raise ConfigurationError("SHREE_MAX_TOOL_ROUNDS must be at least 1")

        return cls(
            database_url=os.environ.get("SHREE_DATABASE_URL", cls.database_url),
            redis_url=os.environ.get("SHREE_REDIS_URL", os.environ.get("REDIS_URL", cls.redis_url)),
            celery_broker_url=os.environ.get("SHREE_CELERY_BROKER_URL", cls.celery_broker_url),
            celery_result_backend=os.environ.get("SHREE_CELERY_RESULT_BACKEND", cls.celery_result_backend),
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY"),
            model_name=os.environ.get("SHREE_MODEL", cls.model_name),
            model_max_tokens=_env_int("SHREE_MODEL_MAX_TOKENS", 4096),
            model_timeout_seconds=_env_float("SHREE_MODEL_TIMEOUT", 60.0),
            tool_timeout_seconds=_env_float("SHREE_TOOL_TIMEOUT", 30.0),
            max_tool_rounds=max_rounds,
            social_daily_post_limit=_env_int("SHREE_SOCIAL_DAILY_LIMIT", 150),
            firecrawl_api_key=os.environ.get("FIRECRAWL_API_KEY"),
            gmail_access_token=os.environ.get("SHREE_GMAIL_TOKEN"),
            linkedin_access_token=os.environ.get("SHREE_LINKEDIN_TOKEN"),
            linkedin_person_urn=os.environ.get("SHREE_LINKEDIN_PERSON_URN"),
            sheets_access_token=os.environ.get("SHREE_SHEETS_TOKEN"),
            default_timezone=os.environ.get("SHREE_DEFAULT_TIMEZONE", cls.default_timezone),
            dev_mode=os.environ.get("SHREE_DEV_MODE") == "1",
            notifications=NotificationPolicy.from_env(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings singleton."""
    return Settings.from_env()
