"""
Shree assistant agent.

- orchestrator: bounded model/tool loop for one user message
- proactive: periodic trigger engine, briefings and reminder dispatch
- context: per-turn user context for the model
- runtime: wiring from settings
"""

from __future__ import annotations

from .orchestrator import AgentOrchestrator, AgentRunResult, ToolInvocation
from .proactive import ProactiveTriggerEngine, SweepReport

__all__ = [
    "AgentOrchestrator",
    "AgentRunResult",
    "ProactiveTriggerEngine",
    "SweepReport",
    "ToolInvocation",
]
