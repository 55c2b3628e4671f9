"""
Prometheus Monitoring for Shree.

Provides Prometheus metrics for:
- Model provider calls (latency, tokens)
- Tool invocations by tool and outcome
- Agent runs by final status and tool rounds used
- Proactive messages by type and channel
- Scheduler sweep failures

The worker exposes these with prometheus_client's HTTP server; the
text exposition is available through PrometheusMetrics as well.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from prometheus_client import Counter, Histogram, generate_latest

logger = logging.getLogger(__name__)


# =============================================================================
# Metrics Definitions
# =============================================================================

# Model Provider Metrics
llm_api_calls_total = Counter(
    "shree_llm_api_calls_total",
    "Total model provider calls",
    ["provider", "model", "outcome"],
)

llm_api_duration_seconds = Histogram(
    "shree_llm_api_duration_seconds",
    "Model provider call latency in seconds",
    ["provider", "model"],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

llm_tokens_used = Counter(
    "shree_llm_tokens_used_total",
    "Total model tokens used",
    ["provider", "model", "token_type"],
)

# Tool Metrics
tool_invocations_total = Counter(
    "shree_tool_invocations_total",
    "Total tool invocations",
    ["tool", "outcome"],
)

tool_duration_seconds = Histogram(
    "shree_tool_duration_seconds",
    "Tool execution time in seconds",
    ["tool"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Agent Loop Metrics
agent_runs_total = Counter(
    "shree_agent_runs_total",
    "Agent loop runs by final status",
    ["status"],
)

agent_tool_rounds = Histogram(
    "shree_agent_tool_rounds",
    "Tool rounds used per agent run",
    buckets=(0, 1, 2, 3, 4, 5),
)

# Proactive Engine Metrics
proactive_messages_total = Counter(
    "shree_proactive_messages_total",
    "Proactive messages stored",
    ["message_type", "channel"],
)

sweep_user_failures_total = Counter(
    "shree_sweep_user_failures_total",
    "Per-user failures inside scheduler sweeps",
    ["sweep"],
)


# =============================================================================
# Metrics Recording Functions
# =============================================================================


def record_llm_call(
    provider: str,
    model: str,
    duration_seconds: float,
    input_tokens: int,
    output_tokens: int,
    outcome: str = "ok",
) -> None:
    """
    Record model call metrics.

    Args:
        provider: Model provider (anthropic, stub)
        model: Model name
        duration_seconds: Call duration in seconds
        input_tokens: Number of input tokens
        output_tokens: Number of output tokens
        outcome: "ok", "error" or "timeout"
    """
    llm_api_calls_total.labels(provider=provider, model=model, outcome=outcome).inc()
    llm_api_duration_seconds.labels(provider=provider, model=model).observe(duration_seconds)
    llm_tokens_used.labels(provider=provider, model=model, token_type="input").inc(input_tokens)
    llm_tokens_used.labels(provider=provider, model=model, token_type="output").inc(output_tokens)


def record_tool_call(tool: str, outcome: str, duration_seconds: float) -> None:
    tool_invocations_total.labels(tool=tool, outcome=outcome).inc()
    tool_duration_seconds.labels(tool=tool).observe(duration_seconds)


def record_agent_run(status: str, rounds: int) -> None:
    agent_runs_total.labels(status=status).inc()
    agent_tool_rounds.observe(rounds)


def record_proactive_message(message_type: str, channel: str) -> None:
    proactive_messages_total.labels(message_type=message_type, channel=channel).inc()


def record_sweep_failure(sweep: str) -> None:
    sweep_user_failures_total.labels(sweep=sweep).inc()


# =============================================================================
# Context Managers for Automatic Timing
# =============================================================================


@contextmanager
def track_llm_call(provider: str, model: str) -> Iterator[dict[str, Any]]:
    """
    Context manager for tracking model call metrics.

    Usage:
        >>> with track_llm_call("anthropic", "claude-sonnet-4") as ctx:
        ...     response = await client.messages.create(...)
        ...     ctx["input_tokens"] = response.usage.input_tokens
        ...     ctx["output_tokens"] = response.usage.output_tokens
    """
    start_time = time.time()
    ctx: dict[str, Any] = {"input_tokens": 0, "output_tokens": 0, "outcome": "error"}

    try:
        yield ctx
        if ctx["outcome"] == "error":
            ctx["outcome"] = "ok"
    finally:
        record_llm_call(
            provider=provider,
            model=model,
            duration_seconds=time.time() - start_time,
            input_tokens=ctx.get("input_tokens", 0),
            output_tokens=ctx.get("output_tokens", 0),
            outcome=ctx["outcome"],
        )


@contextmanager
def track_tool_call(tool: str) -> Iterator[dict[str, Any]]:
    """
    Context manager for tracking tool execution.

    Usage:
        >>> with track_tool_call("save_note") as ctx:
        ...     result = await executor(...)
        ...     ctx["outcome"] = "success" if result["success"] else "failure"
    """
    start_time = time.time()
    ctx: dict[str, Any] = {"outcome": "error"}

    try:
        yield ctx
    finally:
        record_tool_call(tool=tool, outcome=ctx.get("outcome", "error"), duration_seconds=time.time() - start_time)


# =============================================================================
# Prometheus Metrics Export
# =============================================================================


class PrometheusMetrics:
    """Prometheus text exposition helpers."""

    @staticmethod
    def generate_metrics() -> bytes:
        return generate_latest()

    @staticmethod
    def get_metrics_as_text() -> str:
        return PrometheusMetrics.generate_metrics().decode("utf-8")
