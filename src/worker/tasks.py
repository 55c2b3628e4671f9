"""
Celery task definitions.

Each task builds a fresh runtime inside its own event loop
(asyncio.run), does one pass and closes it. Engines are idempotent under
re-invocation, so an overlapping beat tick does no harm.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from src.agents.assistant.runtime import AssistantRuntime, build_runtime
from src.services.streaks import decay_streaks
from src.worker.celery_app import celery_app

logger = structlog.get_logger()

T = TypeVar("T")


async def _with_runtime(work: Callable[[AssistantRuntime], Awaitable[T]]) -> T:
    runtime = await build_runtime()
    try:
        return await work(runtime)
    finally:
        await runtime.aclose()


@celery_app.task(name="shree.proactive_sweep")
def proactive_sweep() -> dict[str, Any]:
    report = asyncio.run(_with_runtime(lambda rt: rt.proactive.run_sweep()))
    return report.to_dict()


@celery_app.task(name="shree.briefings")
def briefings() -> dict[str, Any]:
    report = asyncio.run(_with_runtime(lambda rt: rt.proactive.run_briefings()))
    return report.to_dict()


@celery_app.task(name="shree.dispatch_reminders")
def dispatch_reminders() -> dict[str, int]:
    return asyncio.run(_with_runtime(lambda rt: rt.proactive.dispatch_due_reminders()))


async def _decay(runtime: AssistantRuntime) -> dict[str, int]:
    async with runtime.session_factory() as session:
        return await decay_streaks(session)


@celery_app.task(name="shree.streak_decay")
def streak_decay() -> dict[str, int]:
    counts = asyncio.run(_with_runtime(_decay))
    logger.info("streak_decay_done", **counts)
    return counts


@celery_app.task(name="shree.run_agent")
def run_agent(user_id: int, message: str, prior_context: str = "") -> dict[str, Any]:
    """Run one user message through the agent loop off the request path."""
    result = asyncio.run(
        _with_runtime(lambda rt: rt.orchestrator.run_agent_task(user_id, message, prior_context))
    )
    return result.to_dict()


@celery_app.task(name="shree.send_briefing")
def send_briefing(user_id: int, kind: str) -> dict[str, Any] | None:
    """On-demand briefing, sent even if today's was already delivered."""
    message = asyncio.run(_with_runtime(lambda rt: rt.proactive.send_briefing(user_id, kind, force=True)))
    return message.to_dict() if message is not None else None
