"""
Protected time windows.

is_protected() is the pure resolver shared by priority scoring and the
proactive engine. It does no timezone conversion: callers pass a
timestamp already expressed in the user's timezone.

ProtectedTimeService manages the user's blocks and re-scores pending
tasks whenever the set of active blocks changes.

Usage:
    windows = [TimeWindow.from_block(b) for b in blocks]
    if is_protected(windows, now_local):
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.lib.exceptions import NotFoundError, ValidationError
from src.models import ProtectedTimeBlock
from src.models.protected_block import DEFAULT_DAYS

logger = logging.getLogger(__name__)

DAILY = "daily"
WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_clock(value: str) -> time:
    """Parse "HH:MM" (or "H:MM") into a time."""
    try:
        hour_text, minute_text = value.strip().split(":")[:2]
        return time(int(hour_text), int(minute_text))
    except (ValueError, AttributeError) as exc:
        raise ValidationError(f"Invalid time of day: {value!r}") from exc


def normalize_days(days: Iterable[str] | None) -> list[str]:
    """Lowercase and validate weekday names; empty means Monday-Friday."""
    if not days:
        return list(DEFAULT_DAYS)
    normalized: list[str] = []
    for day in days:
        name = day.strip().lower()
        if name not in WEEKDAY_NAMES and name != DAILY:
            raise ValidationError(f"Unknown weekday: {day!r}")
        if name not in normalized:
            normalized.append(name)
    return normalized


@dataclass(frozen=True)
class TimeWindow:
    """A recurring window: a weekday set (or "daily") and an inclusive time range."""

    days: frozenset[str]
    start: time
    end: time
    block_id: int | None = None
    name: str = ""

    @classmethod
    def from_block(cls, block: ProtectedTimeBlock) -> TimeWindow:
        return cls(
            days=frozenset(d.lower() for d in (block.days_of_week or [])),
            start=parse_clock(block.start_time),
            end=parse_clock(block.end_time),
            block_id=block.id,
            name=block.name,
        )

    def applies_on(self, weekday_name: str) -> bool:
        return DAILY in self.days or weekday_name in self.days

    def contains(self, timestamp: datetime) -> bool:
        """Membership test at minute resolution, inclusive at both ends."""
        if not self.applies_on(WEEKDAY_NAMES[timestamp.weekday()]):
            return False
        moment = timestamp.time().replace(second=0, microsecond=0)
        if self.start <= self.end:
            return self.start <= moment <= self.end
        # Window wraps past midnight (e.g. 22:00-06:00)
        return moment >= self.start or moment <= self.end


def is_protected(windows: Iterable[TimeWindow], timestamp: datetime) -> bool:
    """True if any window contains the (user-local) timestamp."""
    return any(window.contains(timestamp) for window in windows)


# =============================================================================
# Service
# =============================================================================


class ProtectedTimeService:
    """CRUD for protected blocks; every mutation re-scores pending tasks."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active(self, user_id: int) -> list[ProtectedTimeBlock]:
        result = await self.session.execute(
            select(ProtectedTimeBlock)
            .where(ProtectedTimeBlock.user_id == user_id, ProtectedTimeBlock.is_active.is_(True))
            .order_by(ProtectedTimeBlock.start_time)
        )
        return list(result.scalars().all())

    async def active_windows(self, user_id: int) -> list[TimeWindow]:
        return [TimeWindow.from_block(block) for block in await self.list_active(user_id)]

    async def is_currently_protected(self, user_id: int, now_local: datetime) -> bool:
        return is_protected(await self.active_windows(user_id), now_local)

    async def create_block(
        self,
        user_id: int,
        name: str,
        start_time: str,
        end_time: str,
        days_of_week: Iterable[str] | None = None,
        purpose: str | None = None,
        now: datetime | None = None,
    ) -> ProtectedTimeBlock:
        """
        Create a protected block and re-score the user's pending tasks.

        Raises:
            ValidationError: If the times or weekday names are malformed
        """
        start = parse_clock(start_time)
        end = parse_clock(end_time)
        block = ProtectedTimeBlock(
            user_id=user_id,
            name=name,
            purpose=purpose,
            start_time=start.strftime("%H:%M"),
            end_time=end.strftime("%H:%M"),
            days_of_week=normalize_days(days_of_week),
            is_active=True,
        )
        self.session.add(block)
        await self.session.flush()
        await self._rescore(user_id, now)
        await self.session.commit()
        logger.info("Protected block %s created for user %s", block.id, user_id)
        return block

    async def deactivate_block(self, user_id: int, block_id: int, now: datetime | None = None) -> ProtectedTimeBlock:
        result = await self.session.execute(
            select(ProtectedTimeBlock).where(
                ProtectedTimeBlock.id == block_id, ProtectedTimeBlock.user_id == user_id
            )
        )
        block = result.scalar_one_or_none()
        if block is None:
            raise NotFoundError(f"Protected block {block_id} not found")
        block.is_active = False
        await self.session.flush()
        await self._rescore(user_id, now)
        await self.session.commit()
        return block

    async def _rescore(self, user_id: int, now: datetime | None = None) -> None:
        # Local import: task_service imports this module for the resolver
        from src.services.task_service import TaskService

        await TaskService(self.session).recalculate_priorities(user_id, now=now, commit=False)
