"""
User profile access and local-time helpers.

Every engine that reasons about "today", "work hours" or "wake time"
goes through local_now() so that the user's configured timezone is
applied in exactly one place.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import User, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Kolkata"


def user_zone(profile: UserProfile | None) -> ZoneInfo:
    """Resolve the profile's timezone, falling back to the default."""
    name = profile.timezone if profile is not None and profile.timezone else DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using %s", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def local_now(profile: UserProfile | None, now: datetime | None = None) -> datetime:
    """The given (or current) instant expressed in the user's timezone."""
    instant = now or datetime.now(UTC)
    return instant.astimezone(user_zone(profile))


def clock_hour(value: str | None, default: int) -> int:
    """Hour component of an "HH:MM" string."""
    if not value:
        return default
    try:
        return int(value.split(":")[0])
    except ValueError:
        return default


class ProfileService:
    """Read and update per-user personalization settings."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_or_create_profile(self, user_id: int) -> UserProfile:
        result = await self.session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = UserProfile(
                user_id=user_id,
                timezone=DEFAULT_TIMEZONE,
                wake_time="07:00",
                sleep_time="23:00",
                work_start_time="09:00",
                work_end_time="18:00",
                proactive_enabled=True,
                wellbeing_enabled=True,
                morning_briefing_enabled=True,
                evening_summary_enabled=True,
            )
            self.session.add(profile)
            await self.session.flush()
        return profile

    async def update_profile(self, user_id: int, **changes: object) -> UserProfile:
        profile = await self.get_or_create_profile(user_id)
        for key, value in changes.items():
            if not hasattr(UserProfile, key) or key in ("id", "user_id"):
                raise AttributeError(f"Unknown profile field: {key}")
            setattr(profile, key, value)
        await self.session.commit()
        return profile

    async def list_proactive_user_ids(self) -> list[int]:
        """Users whose proactive notifications are enabled."""
        result = await self.session.execute(
            select(UserProfile.user_id).where(UserProfile.proactive_enabled.is_(True)).order_by(UserProfile.user_id)
        )
        return list(result.scalars().all())
