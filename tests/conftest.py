"""
Shared test fixtures for Shree.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode logging)
- Async database (in-memory aiosqlite, fresh per test)
- A seeded user with a profile in Asia/Kolkata
- A fixed clock
- Fake collaborators (search, mail, social, sheets, notifier)
- A scripted model provider
- A tool registry wired to all of the above

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("SHREE_DEV_MODE", "1")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.agents.assistant.model_client import ModelResponse  # noqa: E402
from src.config.settings import Settings  # noqa: E402
from src.lib.rate_limit import PostRateLimiter  # noqa: E402
from src.models import Base, User, UserProfile  # noqa: E402
from src.tools import ToolContext, build_registry  # noqa: E402

# Monday 2025-03-10 10:00 in Asia/Kolkata
FIXED_NOW = datetime(2025, 3, 10, 4, 30, tzinfo=UTC)


# ---------------------------------------------------------------------------
# 2. Database
# ---------------------------------------------------------------------------


@pytest.fixture()
async def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def user_id(session_factory) -> int:
    """A user with an email address and a default profile in Asia/Kolkata."""
    async with session_factory() as session:
        user = User(name="Asha", email="asha@example.com")
        session.add(user)
        await session.flush()
        session.add(
            UserProfile(
                user_id=user.id,
                preferred_name="Asha",
                timezone="Asia/Kolkata",
                wake_time="07:00",
                sleep_time="23:00",
                work_start_time="09:00",
                work_end_time="18:00",
                proactive_enabled=True,
                wellbeing_enabled=True,
                morning_briefing_enabled=True,
                evening_summary_enabled=True,
            )
        )
        await session.commit()
        return user.id


# ---------------------------------------------------------------------------
# 3. Clock and settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def clock(now) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        model_timeout_seconds=5.0,
        tool_timeout_seconds=5.0,
        max_tool_rounds=5,
        social_daily_post_limit=3,
    )


# ---------------------------------------------------------------------------
# 4. Fake collaborators
# ---------------------------------------------------------------------------


class FakeSearch:
    def __init__(self) -> None:
        self.queries: list[str] = []

    async def search(self, query: str, limit: int = 5) -> list[dict[str, Any]]:
        self.queries.append(query)
        return [{"title": f"Result for {query}", "url": "https://example.com", "snippet": "..."}][:limit]

    async def scrape(self, url: str) -> dict[str, Any]:
        return {"title": "Example", "content": "# Example page", "url": url}


class FakeMail:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def send_email(self, to: str, subject: str, body: str) -> dict[str, Any]:
        self.sent.append({"to": to, "subject": subject, "body": body})
        return {"message_id": f"msg-{len(self.sent)}"}

    async def list_emails(self, query: str = "", max_results: int = 10) -> list[dict[str, Any]]:
        return [{"id": "m1", "subject": "Invoice", "from": "client@example.com"}][:max_results]


class FakeSocial:
    def __init__(self) -> None:
        self.posts: list[str] = []

    async def create_post(
        self, content: str, visibility: str = "PUBLIC", image_url: str | None = None
    ) -> dict[str, Any]:
        self.posts.append(content)
        return {"post_id": f"urn:li:share:{len(self.posts)}"}


class FakeSheets:
    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []

    async def read(self, spreadsheet_id: str, range_: str) -> list[list[Any]]:
        self.calls.append(("read", spreadsheet_id, range_))
        return [["Client", "Amount"], ["Acme", 5000]]

    async def write(self, spreadsheet_id: str, range_: str, values: list[list[Any]]) -> dict[str, Any]:
        self.calls.append(("write", spreadsheet_id, range_))
        return {"updated_cells": sum(len(row) for row in values)}

    async def append(self, spreadsheet_id: str, range_: str, values: list[list[Any]]) -> dict[str, Any]:
        self.calls.append(("append", spreadsheet_id, range_))
        return {"updated_rows": len(values)}

    async def clear(self, spreadsheet_id: str, range_: str) -> dict[str, Any]:
        self.calls.append(("clear", spreadsheet_id, range_))
        return {"cleared_range": range_}

    async def delete_rows(self, spreadsheet_id: str, sheet_id: int, start_index: int, end_index: int) -> dict[str, Any]:
        self.calls.append(("delete_rows", spreadsheet_id, str(sheet_id)))
        return {"deleted_rows": end_index - start_index}


class FakeNotifier:
    def __init__(self) -> None:
        self.pushed: list[tuple[int, dict[str, Any]]] = []

    async def push(self, user_id: int, payload: dict[str, Any]) -> None:
        self.pushed.append((user_id, payload))


@pytest.fixture()
def fake_search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture()
def fake_mail() -> FakeMail:
    return FakeMail()


@pytest.fixture()
def fake_social() -> FakeSocial:
    return FakeSocial()


@pytest.fixture()
def fake_sheets() -> FakeSheets:
    return FakeSheets()


@pytest.fixture()
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


# ---------------------------------------------------------------------------
# 5. Scripted model provider
# ---------------------------------------------------------------------------


class StubModelProvider:
    """
    Replays scripted turns.

    Each script entry is a ModelResponse, an exception to raise, or a
    callable (messages) -> ModelResponse. The last entry repeats once the
    script runs out.
    """

    def __init__(self, script: list[Any]) -> None:
        self.script = list(script)
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self, system: str, tools: list[dict[str, Any]], messages: list[dict[str, Any]]
    ) -> ModelResponse:
        self.calls.append({"system": system, "tools": tools, "messages": copy.deepcopy(messages)})
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(messages)
        return step


# ---------------------------------------------------------------------------
# 6. Tools
# ---------------------------------------------------------------------------


@pytest.fixture()
def post_limiter(settings) -> PostRateLimiter:
    return PostRateLimiter(None, limit=settings.social_daily_post_limit, action="linkedin", account="default")


@pytest.fixture()
def tool_context(session_factory, settings, fake_search, fake_mail, fake_social, fake_sheets, post_limiter, clock):
    return ToolContext(
        session_factory=session_factory,
        settings=settings,
        search=fake_search,
        mail=fake_mail,
        social=fake_social,
        sheets=fake_sheets,
        post_limiter=post_limiter,
        clock=clock,
    )


@pytest.fixture()
def registry(tool_context, settings):
    return build_registry(tool_context, timeout_seconds=settings.tool_timeout_seconds)


@pytest.fixture()
def make_provider() -> Callable[[list[Any]], StubModelProvider]:
    """Factory for scripted model providers."""
    return StubModelProvider
