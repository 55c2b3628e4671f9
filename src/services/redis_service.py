"""Redis service for shared state and in-app notification fan-out."""

import dataclasses
import json
import os
import ssl
from datetime import date, datetime
from enum import Enum
from typing import Any

import redis.asyncio as redis


class ShreeJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for payloads pushed through Redis:
    - dataclasses → dict via dataclasses.asdict()
    - datetime/date → .isoformat()
    - Enum → .value
    - set → list
    """

    def default(self, obj: Any) -> Any:
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, set):
            return list(obj)
        return super().default(obj)


def dumps(value: Any) -> str:
    return json.dumps(value, cls=ShreeJSONEncoder)


class RedisService:
    """Lazily connected async Redis client; None when Redis is unreachable."""

    def __init__(self, redis_url: str | None = None) -> None:
        self._redis_url = redis_url
        self._client: redis.Redis | None = None

    @staticmethod
    def _tls_kwargs(redis_url: str) -> dict[str, Any]:
        """Build TLS keyword arguments when using rediss:// URLs."""
        if not redis_url.startswith("rediss://"):
            return {}
        cert_path = os.environ.get("REDIS_TLS_CERT_PATH")
        ssl_ctx = ssl.create_default_context(cafile=cert_path) if cert_path else ssl.create_default_context()
        ssl_ctx.check_hostname = True
        ssl_ctx.verify_mode = ssl.CERT_REQUIRED
        return {"ssl": ssl_ctx}

    def _url(self) -> str:
        if self._redis_url:
            return self._redis_url
        from src.config.settings import get_settings

        return get_settings().redis_url

    async def _ensure_async_client(self) -> redis.Redis | None:
        """Get or create the async client."""
        if self._client is None:
            redis_url = self._url()
            try:
                client = redis.from_url(redis_url, decode_responses=True, **self._tls_kwargs(redis_url))
                await client.ping()
                self._client = client
            except (redis.ConnectionError, redis.TimeoutError, OSError):
                # Callers fall back to in-memory behavior
                self._client = None
        return self._client

    async def client(self) -> redis.Redis | None:
        """The connected client, or None when Redis is unreachable."""
        return await self._ensure_async_client()

    async def publish(self, channel: str, value: Any) -> int:
        """Publish a JSON payload. Returns the number of subscribers reached (0 if Redis is down)."""
        client = await self._ensure_async_client()
        if client is None:
            return 0
        return int(await client.publish(channel, dumps(value)))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Singleton instance
_redis_service: RedisService | None = None


def get_redis_service() -> RedisService:
    """Get Redis service singleton."""
    global _redis_service
    if _redis_service is None:
        _redis_service = RedisService()
    return _redis_service
