"""Tests for Prometheus metrics recording."""

from __future__ import annotations

import pytest

from src.infra.monitoring import (
    PrometheusMetrics,
    record_agent_run,
    record_proactive_message,
    record_sweep_failure,
    track_llm_call,
    track_tool_call,
)


def test_recorded_metrics_are_exported():
    record_agent_run("completed", 2)
    record_proactive_message("deadline_reminder", "email")
    record_sweep_failure("proactive")
    with track_tool_call("save_note") as ctx:
        ctx["outcome"] = "success"

    text = PrometheusMetrics.get_metrics_as_text()

    assert 'shree_agent_runs_total{status="completed"}' in text
    assert 'shree_proactive_messages_total{message_type="deadline_reminder",channel="email"}' in text
    assert 'shree_sweep_user_failures_total{sweep="proactive"}' in text
    assert 'shree_tool_invocations_total{tool="save_note",outcome="success"}' in text


def test_llm_call_marked_error_when_body_raises():
    with pytest.raises(RuntimeError):
        with track_llm_call("anthropic", "claude-metrics-test"):
            raise RuntimeError("boom")

    text = PrometheusMetrics.get_metrics_as_text()
    assert 'model="claude-metrics-test",outcome="error"' in text
