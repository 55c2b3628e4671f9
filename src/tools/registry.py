"""
Tool Registry & Dispatcher for Shree.

Maps a tool name to a typed argument model (pydantic) and an async
executor. invoke() is the single entry point the agent loop uses:

- unknown tool names come back as an UNKNOWN_TOOL envelope
- arguments are validated against the tool's model before execution
- every executor runs under a timeout
- nothing raises past invoke(): exceptions become {"success": False, ...}
- no retries; the model sees the failure and decides what to do

Usage:
    registry = ToolRegistry(context)
    registry.register(ToolSpec("save_note", "Save a note", SaveNoteArgs, save_note))
    result = await registry.invoke(user_id, "save_note", {"content": "idea"})
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config.settings import Settings
from src.infra.monitoring import track_tool_call
from src.integrations.base import MailProvider, SearchProvider, SocialProvider, SpreadsheetProvider
from src.lib.errors import (
    INVALID_ARGUMENTS,
    NOT_CONNECTED,
    NOT_FOUND,
    RATE_LIMITED,
    TIMEOUT,
    TOOL_FAILED,
    UNKNOWN_TOOL,
    build_tool_failure,
)
from src.lib.exceptions import (
    NotConnectedError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from src.lib.logging import hash_uid
from src.lib.rate_limit import PostRateLimiter

logger = structlog.get_logger()


class ToolArgs(BaseModel):
    """Base class for tool argument models. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


@dataclass
class ToolContext:
    """Collaborators every executor may use."""

    session_factory: async_sessionmaker[AsyncSession]
    settings: Settings
    search: SearchProvider | None = None
    mail: MailProvider | None = None
    social: SocialProvider | None = None
    sheets: SpreadsheetProvider | None = None
    post_limiter: PostRateLimiter | None = None
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(UTC))

    def now(self) -> datetime:
        return self.clock()


Executor = Callable[[ToolContext, int, Any], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class ToolSpec:
    """
    One registered tool.

    Args:
        name: Tool name the model calls
        description: Usage guidance shown to the model
        args_model: Pydantic model describing the arguments
        executor: async (context, user_id, validated_args) -> envelope
    """

    name: str
    description: str
    args_model: type[ToolArgs]
    executor: Executor

    def to_catalog_entry(self) -> dict[str, Any]:
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        return {"name": self.name, "description": self.description, "input_schema": schema}


class ToolRegistry:
    """Name-keyed registry of typed tools."""

    def __init__(self, context: ToolContext, timeout_seconds: float | None = None) -> None:
        self.context = context
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else context.settings.tool_timeout_seconds
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool {spec.name!r} is already registered")
        self._tools[spec.name] = spec

    def register_all(self, specs: list[ToolSpec]) -> None:
        for spec in specs:
            self.register(spec)

    @property
    def names(self) -> list[str]:
        return sorted(self._tools)

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def catalog(self) -> list[dict[str, Any]]:
        """Tool definitions in the model provider's format."""
        return [self._tools[name].to_catalog_entry() for name in self.names]

    async def invoke(self, user_id: int, tool_name: str, args: Any) -> dict[str, Any]:
        """
        Validate and run one tool call. Never raises.

        Returns:
            Normalized envelope {"success": bool, ...}
        """
        spec = self._tools.get(tool_name)
        if spec is None:
            logger.warning("tool_unknown", tool=tool_name, user_hash=hash_uid(user_id))
            return build_tool_failure(UNKNOWN_TOOL, f"Unknown tool: {tool_name}", available_tools=self.names)

        with track_tool_call(tool_name) as metrics:
            try:
                validated = spec.args_model.model_validate(args if args is not None else {})
            except PydanticValidationError as e:
                metrics["outcome"] = "invalid_arguments"
                return build_tool_failure(
                    INVALID_ARGUMENTS,
                    f"Invalid arguments for {tool_name}",
                    details=[
                        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in e.errors()
                    ],
                )

            result = await self._execute(spec, user_id, validated)
            metrics["outcome"] = "success" if result.get("success") else result.get("code", "failure").lower()
            return result

    async def _execute(self, spec: ToolSpec, user_id: int, validated: ToolArgs) -> dict[str, Any]:
        try:
            result = await asyncio.wait_for(
                spec.executor(self.context, user_id, validated), timeout=self.timeout_seconds
            )
        except TimeoutError:
            logger.warning("tool_timeout", tool=spec.name, timeout=self.timeout_seconds)
            return build_tool_failure(TIMEOUT, f"{spec.name} timed out after {self.timeout_seconds:g}s")
        except NotConnectedError as e:
            return build_tool_failure(NOT_CONNECTED, str(e), provider=e.provider)
        except RateLimitExceededError as e:
            return build_tool_failure(RATE_LIMITED, str(e), remaining=e.remaining)
        except NotFoundError as e:
            return build_tool_failure(NOT_FOUND, str(e))
        except ValidationError as e:
            return build_tool_failure(INVALID_ARGUMENTS, str(e))
        except Exception as e:
            logger.error("tool_failed", tool=spec.name, error=str(e), error_type=type(e).__name__)
            return build_tool_failure(TOOL_FAILED, str(e) or type(e).__name__)

        if not isinstance(result, dict) or "success" not in result:
            logger.error("tool_bad_envelope", tool=spec.name)
            return build_tool_failure(TOOL_FAILED, f"{spec.name} returned a malformed result")
        return result
