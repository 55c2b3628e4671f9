"""Tests for the Anthropic-backed model provider with a fake SDK client."""

from __future__ import annotations

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from src.agents.assistant.model_client import STOP_TOOL_USE, AnthropicModelProvider, TextSegment, ToolCall
from src.lib.exceptions import ModelProviderError


class FakeMessages:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.kwargs: dict = {}

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def fake_client(messages: FakeMessages) -> SimpleNamespace:
    return SimpleNamespace(messages=messages)


def sdk_response(stop_reason, *blocks):
    return SimpleNamespace(
        stop_reason=stop_reason,
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=120, output_tokens=30),
    )


async def test_parses_text_and_tool_use_in_order():
    messages = FakeMessages(
        sdk_response(
            "tool_use",
            SimpleNamespace(type="text", text="Let me set that."),
            SimpleNamespace(type="tool_use", id="toolu_1", name="set_reminder", input={"reminder_text": "call Raj"}),
        )
    )
    provider = AnthropicModelProvider(None, "claude-test", max_tokens=512, client=fake_client(messages))

    response = await provider.complete("system", [{"name": "set_reminder"}], [{"role": "user", "content": "hi"}])

    assert response.stop_reason == STOP_TOOL_USE
    assert response.content == [
        TextSegment("Let me set that."),
        ToolCall("toolu_1", "set_reminder", {"reminder_text": "call Raj"}),
    ]
    assert response.wants_tools is True
    assert (response.input_tokens, response.output_tokens) == (120, 30)
    assert messages.kwargs["model"] == "claude-test"
    assert messages.kwargs["max_tokens"] == 512
    assert messages.kwargs["tools"] == [{"name": "set_reminder"}]


async def test_omits_empty_tool_list():
    messages = FakeMessages(sdk_response("end_turn", SimpleNamespace(type="text", text="Hello")))
    provider = AnthropicModelProvider(None, "claude-test", client=fake_client(messages))

    response = await provider.complete("system", [], [{"role": "user", "content": "hi"}])

    assert "tools" not in messages.kwargs
    assert response.text == "Hello"
    assert response.wants_tools is False


async def test_sdk_errors_become_model_provider_errors():
    error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    provider = AnthropicModelProvider(None, "claude-test", client=fake_client(FakeMessages(error=error)))

    with pytest.raises(ModelProviderError) as info:
        await provider.complete("system", [], [{"role": "user", "content": "hi"}])
    assert info.value.provider == "anthropic"
