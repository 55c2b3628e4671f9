"""
Tests for the assistant agent loop.

The model is a scripted stub; tools are the real registry backed by the
in-memory database and fake providers.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
from datetime import timedelta

import pytest
from sqlalchemy import select

from src.agents.assistant.model_client import (
    STOP_END_TURN,
    STOP_TOOL_USE,
    ModelResponse,
    TextSegment,
    ToolCall,
)
from src.agents.assistant.orchestrator import AgentOrchestrator
from src.lib.errors import APOLOGY_MESSAGE
from src.lib.exceptions import ModelProviderError
from src.models import AgentExecution, Reminder


def text_turn(text: str) -> ModelResponse:
    return ModelResponse(stop_reason=STOP_END_TURN, content=[TextSegment(text)])


def tool_turn(*calls: ToolCall, text: str = "") -> ModelResponse:
    content = [TextSegment(text)] if text else []
    return ModelResponse(stop_reason=STOP_TOOL_USE, content=[*content, *calls])


def last_tool_results(messages) -> list[dict]:
    return [json.loads(block["content"]) for block in messages[-1]["content"]]


@pytest.fixture()
def make_orchestrator(session_factory, registry, settings, clock, make_provider):
    def factory(script, **overrides):
        provider = make_provider(script)
        run_settings = dataclasses.replace(settings, **overrides) if overrides else settings
        return AgentOrchestrator(session_factory, provider, registry, run_settings, clock=clock), provider

    return factory


async def load_execution(session_factory, execution_id) -> AgentExecution:
    async with session_factory() as session:
        return await session.get(AgentExecution, execution_id)


# =============================================================================
# Happy paths
# =============================================================================


async def test_plain_answer_without_tools(make_orchestrator, session_factory, user_id):
    orchestrator, provider = make_orchestrator([text_turn("Hello Asha!")])

    result = await orchestrator.run_agent_task(user_id, "hi")

    assert result.success is True
    assert result.result_text == "Hello Asha!"
    assert result.rounds == 0
    assert result.tool_invocations == []
    assert len(provider.calls) == 1

    execution = await load_execution(session_factory, result.execution_id)
    assert execution.status == "completed"
    assert execution.input_message == "hi"
    assert execution.result_text == "Hello Asha!"


async def test_reminder_tomorrow_at_10am(make_orchestrator, session_factory, user_id, now):
    def confirm(messages):
        scheduled = last_tool_results(messages)[0]["scheduled_time"]
        return text_turn(f"Done! I'll remind you to call Raj at {scheduled}.")

    orchestrator, provider = make_orchestrator([
        tool_turn(
            ToolCall("call_1", "set_reminder", {"reminder_text": "call Raj", "time_expression": "tomorrow at 10am"})
        ),
        confirm,
    ])

    result = await orchestrator.run_agent_task(user_id, "remind me to call Raj tomorrow at 10am")

    assert result.success is True
    assert "2025-03-11T10:00:00+05:30" in result.result_text
    assert result.rounds == 1
    [invocation] = result.tool_invocations
    assert invocation.tool == "set_reminder"
    assert invocation.success is True

    async with session_factory() as session:
        reminder = (await session.execute(select(Reminder))).scalar_one()
    assert reminder.reminder_text == "call Raj"
    assert reminder.scheduled_time == now + timedelta(hours=24)
    assert reminder.status == "pending"

    execution = await load_execution(session_factory, result.execution_id)
    assert execution.rounds == 1
    assert execution.tool_invocations[0]["tool"] == "set_reminder"
    assert execution.tool_invocations[0]["result"]["success"] is True


async def test_tool_results_fed_back_in_call_order(make_orchestrator, user_id):
    orchestrator, provider = make_orchestrator([
        tool_turn(
            ToolCall("a", "save_note", {"content": "first"}),
            ToolCall("b", "launch_rocket", {}),
            ToolCall("c", "save_note", {"content": "third"}),
        ),
        text_turn("Saved two notes."),
    ])

    result = await orchestrator.run_agent_task(user_id, "save these")

    assert [inv.tool for inv in result.tool_invocations] == ["save_note", "launch_rocket", "save_note"]
    assert [inv.success for inv in result.tool_invocations] == [True, False, True]

    second_call = provider.calls[1]["messages"]
    assert second_call[1]["role"] == "assistant"
    blocks = second_call[2]["content"]
    assert [b["tool_use_id"] for b in blocks] == ["a", "b", "c"]
    assert [b["is_error"] for b in blocks] == [False, True, False]
    assert json.loads(blocks[1]["content"])["code"] == "UNKNOWN_TOOL"
    assert result.success is True


async def test_system_prompt_and_catalog(make_orchestrator, user_id):
    orchestrator, provider = make_orchestrator([text_turn("ok")])

    await orchestrator.run_agent_task(user_id, "what's up")

    call = provider.calls[0]
    assert "Asia/Kolkata" in call["system"]
    assert "Monday, 10 March 2025 10:00" in call["system"]
    assert "set_reminder" in {tool["name"] for tool in call["tools"]}


async def test_prior_context_precedes_message(make_orchestrator, user_id):
    orchestrator, provider = make_orchestrator([text_turn("ok")])

    await orchestrator.run_agent_task(user_id, "and the second one?", prior_context="User: list my tasks")

    first = provider.calls[0]["messages"][0]
    assert first == {"role": "user", "content": "User: list my tasks\n\nand the second one?"}


# =============================================================================
# Limits and failures
# =============================================================================


async def test_round_cap_stops_after_five_rounds(make_orchestrator, session_factory, user_id):
    orchestrator, provider = make_orchestrator([tool_turn(ToolCall("loop", "list_tasks", {}))])

    result = await orchestrator.run_agent_task(user_id, "keep going")

    assert result.success is True
    assert result.rounds == 5
    assert len(result.tool_invocations) == 5
    assert len(provider.calls) == 6
    assert result.result_text.startswith("Done: list_tasks")

    execution = await load_execution(session_factory, result.execution_id)
    assert execution.status == "completed"
    assert execution.rounds == 5


async def test_round_cap_keeps_model_text(make_orchestrator, user_id):
    orchestrator, _ = make_orchestrator([tool_turn(ToolCall("loop", "list_tasks", {}), text="Still checking.")])
    result = await orchestrator.run_agent_task(user_id, "keep going")
    assert result.result_text == "Still checking."


async def test_model_error_fails_execution_with_apology(make_orchestrator, session_factory, user_id):
    orchestrator, _ = make_orchestrator([
        tool_turn(ToolCall("a", "save_note", {"content": "keep me"})),
        ModelProviderError("overloaded", provider="anthropic", status_code=529),
    ])

    result = await orchestrator.run_agent_task(user_id, "note this")

    assert result.success is False
    assert result.result_text == APOLOGY_MESSAGE
    assert "overloaded" in result.error
    assert len(result.tool_invocations) == 1

    execution = await load_execution(session_factory, result.execution_id)
    assert execution.status == "failed"
    assert execution.result_text == APOLOGY_MESSAGE
    assert "overloaded" in execution.error
    assert execution.completed_at is not None


async def test_store_down_returns_apology(registry, settings, clock, make_provider, user_id):
    class UnreachableStore:
        def __call__(self):
            return self

        async def __aenter__(self):
            raise ConnectionError("could not connect to server")

        async def __aexit__(self, *exc_info):
            return False

    provider = make_provider([text_turn("never sent")])
    orchestrator = AgentOrchestrator(UnreachableStore(), provider, registry, settings, clock=clock)

    result = await orchestrator.run_agent_task(user_id, "hi")

    assert result.success is False
    assert result.result_text == APOLOGY_MESSAGE
    assert result.execution_id is None
    assert "could not connect" in result.error
    assert provider.calls == []


async def test_model_timeout_is_fatal(make_orchestrator, session_factory, user_id):
    class SlowProvider:
        async def complete(self, system, tools, messages):
            await asyncio.sleep(1)

    orchestrator, _ = make_orchestrator([text_turn("unused")], model_timeout_seconds=0.01)
    orchestrator.provider = SlowProvider()

    result = await orchestrator.run_agent_task(user_id, "hello?")

    assert result.success is False
    assert "timed out" in result.error
    assert (await load_execution(session_factory, result.execution_id)).status == "failed"


async def test_runs_for_one_user_are_serialized(session_factory, registry, settings, clock, user_id):
    class CountingProvider:
        def __init__(self):
            self.active = 0
            self.peak = 0

        async def complete(self, system, tools, messages):
            self.active += 1
            self.peak = max(self.peak, self.active)
            await asyncio.sleep(0.01)
            self.active -= 1
            return text_turn("ok")

    provider = CountingProvider()
    orchestrator = AgentOrchestrator(session_factory, provider, registry, settings, clock=clock)

    results = await asyncio.gather(*(orchestrator.run_agent_task(user_id, f"msg {i}") for i in range(3)))

    assert all(r.success for r in results)
    assert provider.peak == 1
