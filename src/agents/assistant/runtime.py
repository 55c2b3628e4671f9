"""
Wiring for the assistant: one place that turns Settings into a database
engine, collaborators, the tool registry, the agent orchestrator and the
proactive engine.

Every runtime owns its engine, HTTP client and Redis connection, so a
runtime must be used (and closed) inside the event loop that built it.
Celery tasks build a fresh one per run.

Usage:
    runtime = await build_runtime()
    try:
        result = await runtime.orchestrator.run_agent_task(user_id, "remind me ...")
    finally:
        await runtime.aclose()
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.agents.assistant.briefing import BriefingWriter
from src.agents.assistant.model_client import AnthropicModelProvider, ModelProvider
from src.agents.assistant.orchestrator import AgentOrchestrator
from src.agents.assistant.proactive import ProactiveTriggerEngine
from src.config.settings import Settings, get_settings
from src.integrations.firecrawl import FirecrawlClient
from src.integrations.gmail import GmailClient
from src.integrations.linkedin import LinkedInClient
from src.integrations.notifier import RedisNotifier
from src.integrations.sheets import SheetsClient
from src.lib.rate_limit import PostRateLimiter
from src.services.redis_service import RedisService
from src.tools import ToolContext, ToolRegistry, build_registry

logger = structlog.get_logger()

HTTP_TIMEOUT_SECONDS = 20.0


@dataclass
class AssistantRuntime:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    registry: ToolRegistry
    orchestrator: AgentOrchestrator
    proactive: ProactiveTriggerEngine
    redis: RedisService
    http: httpx.AsyncClient

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.redis.close()
        await self.engine.dispose()


async def build_runtime(
    settings: Settings | None = None,
    provider: ModelProvider | None = None,
    engine: AsyncEngine | None = None,
) -> AssistantRuntime:
    """
    Build every long-lived component from settings.

    Args:
        settings: Defaults to get_settings()
        provider: Model provider override (defaults to Anthropic)
        engine: Database engine override

    Returns:
        AssistantRuntime; call aclose() when done
    """
    settings = settings or get_settings()
    engine = engine or create_async_engine(settings.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    http = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    redis_service = RedisService(settings.redis_url)
    mail = GmailClient(settings.gmail_access_token, http=http)

    context = ToolContext(
        session_factory=session_factory,
        settings=settings,
        search=FirecrawlClient(settings.firecrawl_api_key, http=http),
        mail=mail,
        social=LinkedInClient(settings.linkedin_access_token, settings.linkedin_person_urn, http=http),
        sheets=SheetsClient(settings.sheets_access_token, http=http),
        post_limiter=PostRateLimiter(
            await redis_service.client(),
            limit=settings.social_daily_post_limit,
            window=settings.social_window,
            action="linkedin",
            # one token for every user, so one budget
            account=settings.linkedin_person_urn or "default",
        ),
    )
    registry = build_registry(context, timeout_seconds=settings.tool_timeout_seconds)

    provider = provider or AnthropicModelProvider(
        settings.anthropic_api_key, settings.model_name, max_tokens=settings.model_max_tokens
    )
    orchestrator = AgentOrchestrator(session_factory, provider, registry, settings)
    proactive = ProactiveTriggerEngine(
        session_factory,
        RedisNotifier(redis_service),
        mail=mail,
        briefing_writer=BriefingWriter(provider, timeout_seconds=settings.model_timeout_seconds),
        policy=settings.notifications,
    )

    logger.debug("assistant_runtime_built", tools=len(registry.names), model=settings.model_name)
    return AssistantRuntime(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        registry=registry,
        orchestrator=orchestrator,
        proactive=proactive,
        redis=redis_service,
        http=http,
    )
