"""
Rolling-window post limiter for Shree.

Social providers cap how many posts an account may publish per day.
PostRateLimiter tracks posts in a sliding window so the social tool can
refuse politely (a `rate_limited` envelope) instead of
letting the provider reject the call.

Backed by a Redis sorted set when Redis is reachable, so the budget is
shared across the API process and workers; falls back to an in-process
sliding window otherwise.

When `account` is set every user posting through that account draws on
one budget; without it each user has their own.

Usage:
    limiter = PostRateLimiter(
        await RedisService(settings.redis_url).client(),
        limit=150,
        action="linkedin",
        account=settings.linkedin_person_urn or "default",
    )

    if await limiter.check_and_consume(user_id):
        ...  # publish
    left = await limiter.remaining(user_id)
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import structlog

from src.lib.logging import hash_uid

logger = structlog.get_logger()


class InMemoryWindow:
    """
    In-process sliding window store.

    Used when Redis is unavailable. Counts are per-process only.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._buckets: dict[str, list[float]] = {}

    def _prune(self, key: str, window_seconds: float) -> list[float]:
        cutoff = self._clock() - window_seconds
        bucket = [ts for ts in self._buckets.get(key, []) if ts > cutoff]
        self._buckets[key] = bucket
        return bucket

    def consume(self, key: str, limit: int, window_seconds: float) -> bool:
        bucket = self._prune(key, window_seconds)
        if len(bucket) >= limit:
            return False
        bucket.append(self._clock())
        return True

    def count(self, key: str, window_seconds: float) -> int:
        return len(self._prune(key, window_seconds))

    def reset(self, key: str) -> None:
        self._buckets.pop(key, None)


class PostRateLimiter:
    """
    Sliding-window limiter with Redis backend and memory fallback.

    Args:
        redis_client: Async Redis client, or None to use the in-memory window
        limit: Maximum operations per window
        window: Window length (default 24 hours)
        action: Key namespace, so different providers keep separate budgets
        account: Shared provider account; when set the budget is per account, not per user
    """

    REDIS_PREFIX = "shree:ratelimit:"

    def __init__(
        self,
        redis_client: Any | None = None,
        limit: int = 150,
        window: timedelta = timedelta(hours=24),
        action: str = "social_post",
        account: str | None = None,
        memory: InMemoryWindow | None = None,
    ) -> None:
        self._redis = redis_client
        self.limit = limit
        self.window_seconds = window.total_seconds()
        self.action = action
        self.account = account
        self._memory = memory or InMemoryWindow()

    def _key(self, user_id: int) -> str:
        if self.account:
            return f"{self.REDIS_PREFIX}{self.action}:account:{self.account}"
        return f"{self.REDIS_PREFIX}{self.action}:{user_id}"

    async def check_and_consume(self, user_id: int) -> bool:
        """
        Consume one unit of the budget if any is left.

        Returns:
            True if the operation may proceed, False if the budget is exhausted
        """
        key = self._key(user_id)
        if self._redis is not None:
            try:
                allowed = await self._consume_redis(key)
            except Exception as e:
                logger.warning("rate_limit_redis_error", error=str(e))
            else:
                if not allowed:
                    logger.info("rate_limit_exhausted", user_hash=hash_uid(user_id), action=self.action)
                return allowed

        allowed = self._memory.consume(key, self.limit, self.window_seconds)
        if not allowed:
            logger.info("rate_limit_exhausted", user_hash=hash_uid(user_id), action=self.action)
        return allowed

    async def remaining(self, user_id: int) -> int:
        """Return how many operations are left in the current window."""
        key = self._key(user_id)
        if self._redis is not None:
            try:
                now = time.time()
                await self._redis.zremrangebyscore(key, 0, now - self.window_seconds)
                current: int = await self._redis.zcard(key)
                return max(0, self.limit - current)
            except Exception as e:
                logger.warning("rate_limit_redis_error", error=str(e))
        return max(0, self.limit - self._memory.count(key, self.window_seconds))

    async def _consume_redis(self, key: str) -> bool:
        now = time.time()
        member = f"{now}:{uuid.uuid4().hex[:8]}"

        pipe = self._redis.pipeline()
        pipe.zremrangebyscore(key, 0, now - self.window_seconds)
        pipe.zcard(key)
        pipe.zadd(key, {member: now})
        pipe.expire(key, int(self.window_seconds))
        results = await pipe.execute()

        if results[1] >= self.limit:
            # Rejected, so drop the entry we just added
            await self._redis.zrem(key, member)
            return False
        return True
