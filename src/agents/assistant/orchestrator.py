"""
Assistant agent loop.

run_agent_task() turns one user message into model turns and tool calls:

1. open an AgentExecution row in "running" state
2. build the user context and send it with the tool catalog
3. while the model asks for tools and fewer than max_tool_rounds rounds
   have run: invoke every requested tool, record (call, result) in
   order, feed the results back as the next turn
4. take the plain text of the last model turn as the answer and mark
   the execution "completed"

Reaching the round cap is a normal finish. Model failures (including
timeouts) mark the execution "failed" and return an apology; the raw
error is logged and kept on the row, not shown to the user. Tool
failures never abort the loop: the registry returns them as envelopes.

Runs for the same user are serialized inside one process with an
asyncio.Lock per user; different users never share state.
"""

from __future__ import annotations

import asyncio
import json
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.agents.assistant.context import ContextBuilder
from src.agents.assistant.model_client import ModelProvider, ModelResponse
from src.config.settings import Settings
from src.infra.monitoring import record_agent_run
from src.lib.errors import APOLOGY_MESSAGE
from src.lib.exceptions import ModelProviderError
from src.lib.logging import hash_uid
from src.models import AgentExecution, ExecutionStatus
from src.tools.registry import ToolRegistry

logger = structlog.get_logger()


@dataclass
class ToolInvocation:
    """One (call, result) pair, in the order it happened."""

    round: int
    tool: str
    arguments: dict[str, Any]
    result: dict[str, Any]

    @property
    def success(self) -> bool:
        return bool(self.result.get("success"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "tool": self.tool,
            "arguments": self.arguments,
            "result": self.result,
            "success": self.success,
        }


@dataclass
class AgentRunResult:
    success: bool
    result_text: str
    execution_id: int | None
    tool_invocations: list[ToolInvocation] = field(default_factory=list)
    rounds: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "result_text": self.result_text,
            "execution_id": self.execution_id,
            "tool_invocations": [inv.to_dict() for inv in self.tool_invocations],
            "rounds": self.rounds,
            "error": self.error,
        }


def _json_safe(value: Any) -> Any:
    return json.loads(json.dumps(value, default=str))


class AgentOrchestrator:
    """
    Drives the bounded tool-use loop for one message at a time per user.

    Args:
        session_factory: Async session factory for execution records and context
        provider: Model provider
        registry: Tool registry the model may call
        settings: Round cap and model timeout
        clock: Returns "now" as an aware UTC datetime
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        provider: ModelProvider,
        registry: ToolRegistry,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.provider = provider
        self.registry = registry
        self.max_rounds = settings.max_tool_rounds
        self.model_timeout = settings.model_timeout_seconds
        self._clock = clock or (lambda: datetime.now(UTC))
        self._user_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    async def run_agent_task(
        self,
        user_id: int,
        user_message: str,
        prior_context: str = "",
        kind: str = "chat",
    ) -> AgentRunResult:
        """
        Run the agent loop for one user message.

        Args:
            user_id: Owner of every record touched
            user_message: The user's text
            prior_context: Optional earlier conversation text, sent before the message
            kind: Execution kind stored on the record ("chat", "briefing", ...)

        Returns:
            AgentRunResult; success is False only for orchestrator-fatal failures
        """
        async with self._lock_for(user_id):
            return await self._run(user_id, user_message, prior_context, kind)

    async def _run(self, user_id: int, user_message: str, prior_context: str, kind: str) -> AgentRunResult:
        log = logger.bind(user_hash=hash_uid(user_id), kind=kind)
        execution_id: int | None = None
        invocations: list[ToolInvocation] = []
        rounds = 0

        try:
            execution_id = await self._open_execution(user_id, user_message, kind)
            async with self.session_factory() as session:
                context = await ContextBuilder(session).build(user_id, self._clock())
            system = context.render()
            catalog = self.registry.catalog()

            first_turn = f"{prior_context.strip()}\n\n{user_message}" if prior_context.strip() else user_message
            messages: list[dict[str, Any]] = [{"role": "user", "content": first_turn}]

            response = await self._call_model(system, catalog, messages)
            while response.wants_tools and rounds < self.max_rounds:
                rounds += 1
                messages.append(response.to_assistant_message())
                result_blocks: list[dict[str, Any]] = []
                for call in response.tool_calls:
                    result = await self.registry.invoke(user_id, call.name, call.arguments)
                    invocations.append(
                        ToolInvocation(round=rounds, tool=call.name, arguments=dict(call.arguments), result=result)
                    )
                    result_blocks.append({
                        "type": "tool_result",
                        "tool_use_id": call.id,
                        "content": json.dumps(result, default=str),
                        "is_error": not result.get("success", False),
                    })
                messages.append({"role": "user", "content": result_blocks})
                response = await self._call_model(system, catalog, messages)

            if response.wants_tools:
                log.info("agent_round_cap_reached", rounds=rounds)

            result_text = response.text or self._fallback_text(invocations)
            await self._close_execution(
                execution_id, ExecutionStatus.COMPLETED, result_text, invocations, rounds
            )
        except Exception as e:
            log.error("agent_run_failed", execution_id=execution_id, error=str(e), error_type=type(e).__name__)
            try:
                await self._close_execution(
                    execution_id, ExecutionStatus.FAILED, APOLOGY_MESSAGE, invocations, rounds, error=str(e)
                )
            except Exception as close_error:
                log.error("agent_execution_close_failed", execution_id=execution_id, error=str(close_error))
            record_agent_run(ExecutionStatus.FAILED.value, rounds)
            return AgentRunResult(
                success=False,
                result_text=APOLOGY_MESSAGE,
                execution_id=execution_id,
                tool_invocations=invocations,
                rounds=rounds,
                error=str(e) or type(e).__name__,
            )

        record_agent_run(ExecutionStatus.COMPLETED.value, rounds)
        log.info("agent_run_completed", execution_id=execution_id, rounds=rounds, tools=len(invocations))
        return AgentRunResult(
            success=True,
            result_text=result_text,
            execution_id=execution_id,
            tool_invocations=invocations,
            rounds=rounds,
        )

    async def _call_model(
        self, system: str, catalog: list[dict[str, Any]], messages: list[dict[str, Any]]
    ) -> ModelResponse:
        try:
            return await asyncio.wait_for(
                self.provider.complete(system, catalog, messages), timeout=self.model_timeout
            )
        except TimeoutError as e:
            raise ModelProviderError(f"Model call timed out after {self.model_timeout:g}s") from e

    @staticmethod
    def _fallback_text(invocations: list[ToolInvocation]) -> str:
        if not invocations:
            return ""
        done = [inv.tool for inv in invocations if inv.success]
        failed = [inv.tool for inv in invocations if not inv.success]
        parts = []
        if done:
            parts.append(f"Done: {', '.join(done)}.")
        if failed:
            parts.append(f"Could not complete: {', '.join(failed)}.")
        return " ".join(parts)

    async def _open_execution(self, user_id: int, user_message: str, kind: str) -> int:
        async with self.session_factory() as session:
            execution = AgentExecution(
                user_id=user_id,
                kind=kind,
                status=ExecutionStatus.RUNNING.value,
                input_message=user_message,
                tool_invocations=[],
                rounds=0,
                started_at=self._clock(),
            )
            session.add(execution)
            await session.commit()
            return execution.id

    async def _close_execution(
        self,
        execution_id: int | None,
        status: ExecutionStatus,
        result_text: str,
        invocations: list[ToolInvocation],
        rounds: int,
        error: str | None = None,
    ) -> None:
        if execution_id is None:
            return
        async with self.session_factory() as session:
            execution = await session.get(AgentExecution, execution_id)
            if execution is None:
                logger.error("agent_execution_missing", execution_id=execution_id)
                return
            execution.status = status.value
            execution.result_text = result_text
            execution.tool_invocations = _json_safe([inv.to_dict() for inv in invocations])
            execution.rounds = rounds
            execution.error = error
            execution.completed_at = self._clock()
            await session.commit()
