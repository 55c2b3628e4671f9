"""
Model provider client for the assistant agent.

The agent loop only depends on the ModelProvider protocol:

    complete(system, tools, messages) -> ModelResponse(stop_reason, content)

where content is an ordered list of TextSegment and ToolCall items.
Conversation history uses the Anthropic Messages shape (role + content
blocks), which AnthropicModelProvider passes straight through.

Usage:
    provider = AnthropicModelProvider(api_key, model="claude-sonnet-4-20250514")
    response = await provider.complete(system_text, registry.catalog(), messages)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import anthropic
import structlog

from src.infra.monitoring import track_llm_call
from src.lib.exceptions import ModelProviderError

logger = structlog.get_logger()

STOP_TOOL_USE = "tool_use"
STOP_END_TURN = "end_turn"


@dataclass(frozen=True)
class TextSegment:
    text: str

    def to_block(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_block(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.arguments}


@dataclass(frozen=True)
class ModelResponse:
    """One model turn."""

    stop_reason: str
    content: list[TextSegment | ToolCall]
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [item for item in self.content if isinstance(item, ToolCall)]

    @property
    def text(self) -> str:
        """All plain-text segments joined."""
        return "\n".join(item.text for item in self.content if isinstance(item, TextSegment) and item.text).strip()

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason == STOP_TOOL_USE and bool(self.tool_calls)

    def to_assistant_message(self) -> dict[str, Any]:
        return {"role": "assistant", "content": [item.to_block() for item in self.content]}


class ModelProvider(Protocol):
    """Anything that can run one tool-aware completion."""

    async def complete(
        self,
        system: str,
        tools: list[dict[str, Any]],
        messages: list[dict[str, Any]],
    ) -> ModelResponse: ...


class AnthropicModelProvider:
    """ModelProvider backed by the Anthropic Messages API."""

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        max_tokens: int = 4096,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def complete(
        self,
        system: str,
        tools: list[dict[str, Any]],
        messages: list[dict[str, Any]],
    ) -> ModelResponse:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": messages,
        }
        if tools:
            kwargs["tools"] = tools

        with track_llm_call(self.provider_name, self.model) as metrics:
            try:
                response = await self._client.messages.create(**kwargs)
            except anthropic.APIError as e:
                logger.error("model_call_failed", model=self.model, error=str(e))
                raise ModelProviderError(f"Model call failed: {e}", provider=self.provider_name) from e
            metrics["input_tokens"] = response.usage.input_tokens
            metrics["output_tokens"] = response.usage.output_tokens

        content: list[TextSegment | ToolCall] = []
        for block in response.content:
            if block.type == "text":
                content.append(TextSegment(block.text))
            elif block.type == "tool_use":
                content.append(ToolCall(block.id, block.name, dict(block.input or {})))

        return ModelResponse(
            stop_reason=response.stop_reason or STOP_END_TURN,
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
