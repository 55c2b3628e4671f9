"""
Agent tools for Shree.

Usage:
    from src.tools import build_registry

    registry = build_registry(context)
    registry.catalog()  # tool definitions for the model
"""

from src.tools import communication, insights, personal, productivity, research
from src.tools.registry import ToolArgs, ToolContext, ToolRegistry, ToolSpec

ALL_TOOLS: list[ToolSpec] = [
    *research.TOOLS,
    *productivity.TOOLS,
    *communication.TOOLS,
    *personal.TOOLS,
    *insights.TOOLS,
]


def build_registry(context: ToolContext, timeout_seconds: float | None = None) -> ToolRegistry:
    """Registry with every built-in tool registered."""
    registry = ToolRegistry(context, timeout_seconds=timeout_seconds)
    registry.register_all(ALL_TOOLS)
    return registry


__all__ = [
    "ALL_TOOLS",
    "ToolArgs",
    "ToolContext",
    "ToolRegistry",
    "ToolSpec",
    "build_registry",
]
