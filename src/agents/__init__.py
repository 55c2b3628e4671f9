"""
Agents for Shree.

- assistant: the conversational agent loop and the proactive trigger engine
"""

from __future__ import annotations

__all__: list[str] = [
    "assistant",
]
