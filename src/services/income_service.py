"""
Income Service for Shree.

Records income reports per source and keeps every source's derived
figures current:

- total_earned and occurrence_count grow additively
- average_amount = round(total / count)
- hourly_rate = round(amount / hours) for the latest report that had hours
- priority_score = round(hourly_rate / best hourly_rate * 100), so the
  user's best-paying source always scores 100

Usage:
    service = IncomeService(session)
    source = await service.record_income(user_id, "Acme", 5000, hours_spent=2)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.lib.exceptions import ValidationError
from src.models import IncomeSource

logger = logging.getLogger(__name__)

LOW_RATE_THRESHOLD = 500


class IncomeService:
    """Income source bookkeeping for one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record_income(
        self,
        user_id: int,
        source: str,
        amount: float,
        hours_spent: float | None = None,
        now: datetime | None = None,
    ) -> IncomeSource:
        """
        Add an income report and recompute all of the user's source priorities.

        Raises:
            ValidationError: Empty source name or negative amount/hours
        """
        name = source.strip()
        if not name:
            raise ValidationError("source name is required")
        if amount < 0:
            raise ValidationError("amount cannot be negative")
        if hours_spent is not None and hours_spent < 0:
            raise ValidationError("hours_spent cannot be negative")

        result = await self.session.execute(
            select(IncomeSource).where(
                IncomeSource.user_id == user_id,
                func.lower(IncomeSource.source_name) == name.lower(),
            )
        )
        income = result.scalar_one_or_none()
        if income is None:
            income = IncomeSource(
                user_id=user_id,
                source_name=name,
                total_earned=0.0,
                occurrence_count=0,
                average_amount=0.0,
                hours_spent=0.0,
                priority_score=0,
            )
            self.session.add(income)

        income.total_earned = (income.total_earned or 0.0) + amount
        income.occurrence_count = (income.occurrence_count or 0) + 1
        income.average_amount = float(round(income.total_earned / income.occurrence_count))
        if hours_spent:
            income.hours_spent = (income.hours_spent or 0.0) + hours_spent
            income.hourly_rate = float(round(amount / hours_spent))
        income.last_earned_at = now or datetime.now(UTC)

        await self.session.flush()
        await self._recompute_priorities(user_id)
        await self.session.commit()
        logger.info("Income recorded for user %s (source %s)", user_id, income.id)
        return income

    async def _recompute_priorities(self, user_id: int) -> None:
        sources = await self.list_sources(user_id)
        best = max((s.hourly_rate or 0.0 for s in sources), default=0.0)
        for source in sources:
            if best > 0 and source.hourly_rate:
                source.priority_score = round(source.hourly_rate / best * 100)
            else:
                source.priority_score = 0

    async def list_sources(self, user_id: int, limit: int | None = None) -> list[IncomeSource]:
        """Sources ranked by hourly rate, then total earned."""
        query = (
            select(IncomeSource)
            .where(IncomeSource.user_id == user_id)
            .order_by(IncomeSource.hourly_rate.desc().nulls_last(), IncomeSource.total_earned.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def money_time_analysis(self, user_id: int) -> dict[str, Any]:
        """Ranked sources, effective hourly rate and recommendations."""
        sources = await self.list_sources(user_id)
        total_earned = sum(s.total_earned or 0.0 for s in sources)
        total_hours = sum(s.hours_spent or 0.0 for s in sources)
        effective_rate = round(total_earned / total_hours) if total_hours > 0 else 0

        ranked = [s.to_dict() for s in sources]
        recommendations: list[dict[str, str]] = []

        rated = [s for s in sources if s.hourly_rate]
        if len(rated) >= 2:
            top, bottom = rated[0], rated[-1]
            if top.hourly_rate > bottom.hourly_rate * 2:
                ratio = round(top.hourly_rate / bottom.hourly_rate)
                recommendations.append({
                    "type": "focus_high_value",
                    "message": f'"{top.source_name}" pays {ratio}x more per hour than '
                               f'"{bottom.source_name}". Prioritize high-value work.',
                })
        if 0 < effective_rate < LOW_RATE_THRESHOLD:
            recommendations.append({
                "type": "increase_rates",
                "message": f"Your effective rate is ₹{effective_rate}/hr. "
                           "Consider raising prices or focusing on higher-paying clients.",
            })
        if any(not s.hourly_rate for s in sources):
            recommendations.append({
                "type": "track_time",
                "message": "Some income sources have no hourly rate. "
                           "Track time spent to identify your most profitable work.",
            })

        return {
            "total_earned": total_earned,
            "hours_tracked": total_hours,
            "effective_hourly_rate": effective_rate,
            "income_sources_ranked": ranked,
            "recommendations": recommendations,
        }
