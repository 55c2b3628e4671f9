"""
In-app notification channel.

Payloads are published on `shree:notifications:<user_id>`; whatever
holds the user's live connection subscribes to that channel.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.lib.logging import hash_uid
from src.services.redis_service import RedisService, get_redis_service

logger = structlog.get_logger()

CHANNEL_PREFIX = "shree:notifications:"


class RedisNotifier:
    def __init__(self, redis_service: RedisService | None = None) -> None:
        self._redis = redis_service or get_redis_service()

    async def push(self, user_id: int, payload: dict[str, Any]) -> None:
        receivers = await self._redis.publish(f"{CHANNEL_PREFIX}{user_id}", payload)
        if receivers == 0:
            # Nobody online; the message stays in the proactive log
            logger.debug("notification_no_subscribers", user_hash=hash_uid(user_id), type=payload.get("type"))
