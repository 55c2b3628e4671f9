"""
Infrastructure module for Shree.

- monitoring: Prometheus counters and histograms for model calls, tool
  calls, agent runs, proactive messages and sweep failures
"""

from src.infra.monitoring import (
    PrometheusMetrics,
    record_proactive_message,
    record_sweep_failure,
    track_llm_call,
    track_tool_call,
)

__all__ = [
    "PrometheusMetrics",
    "record_proactive_message",
    "record_sweep_failure",
    "track_llm_call",
    "track_tool_call",
]
