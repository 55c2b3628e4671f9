"""
Tests for RedisService and the Redis in-app notifier.

Covers:
- JSON encoding of dataclasses, datetimes, enums and sets
- Publishing with a connected client
- Graceful no-op when Redis is unreachable
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum

import pytest

from src.integrations.notifier import CHANNEL_PREFIX, RedisNotifier
from src.services.redis_service import RedisService, dumps


class Colour(Enum):
    BLUE = "blue"


@dataclass
class Point:
    x: int
    y: int


class MockRedisClient:
    def __init__(self, subscribers: int = 1) -> None:
        self.published: list[tuple[str, str]] = []
        self.subscribers = subscribers
        self.closed = False

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return self.subscribers

    async def aclose(self) -> None:
        self.closed = True


def connected_service(client: MockRedisClient) -> RedisService:
    service = RedisService("redis://localhost:6379/0")
    service._client = client
    return service


class TestEncoding:
    def test_encodes_rich_values(self):
        payload = {
            "when": datetime(2025, 3, 10, 4, 30, tzinfo=UTC),
            "day": date(2025, 3, 10),
            "colour": Colour.BLUE,
            "tags": {"tax"},
            "point": Point(1, 2),
        }
        decoded = json.loads(dumps(payload))
        assert decoded == {
            "when": "2025-03-10T04:30:00+00:00",
            "day": "2025-03-10",
            "colour": "blue",
            "tags": ["tax"],
            "point": {"x": 1, "y": 2},
        }

    def test_unknown_types_still_fail(self):
        with pytest.raises(TypeError):
            dumps({"value": object()})


class TestPublish:
    async def test_publish_with_client(self):
        client = MockRedisClient(subscribers=2)
        service = connected_service(client)

        assert await service.publish("chan", {"a": 1}) == 2
        assert client.published == [("chan", '{"a": 1}')]

    async def test_publish_without_redis_is_noop(self, monkeypatch):
        service = RedisService("redis://localhost:6379/0")

        async def unreachable():
            return None

        monkeypatch.setattr(service, "_ensure_async_client", unreachable)
        assert await service.publish("chan", {"a": 1}) == 0
        assert await service.client() is None

    async def test_close_releases_client(self):
        client = MockRedisClient()
        service = connected_service(client)
        await service.close()
        assert client.closed is True
        assert service._client is None

    def test_tls_kwargs_only_for_rediss(self):
        assert RedisService._tls_kwargs("redis://localhost") == {}
        assert "ssl" in RedisService._tls_kwargs("rediss://cache.example.com:6380")


async def test_notifier_publishes_on_user_channel():
    client = MockRedisClient(subscribers=0)
    notifier = RedisNotifier(connected_service(client))

    await notifier.push(42, {"type": "proactive_message", "message": {"id": 1}})

    [(channel, body)] = client.published
    assert channel == f"{CHANNEL_PREFIX}42"
    assert json.loads(body)["message"] == {"id": 1}
