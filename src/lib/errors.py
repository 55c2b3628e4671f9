"""
Centralized tool result envelopes for Shree.

Every tool executor returns a normalized dict `{"success": bool, ...}`.
Failures carry an error code constant, a human message and, for the
declared business failures, a flag the model can react to
(`needs_time`, `needs_amount`, `needs_value`, `rate_limited`,
`not_connected`). The builders here are the only place those shapes
are assembled.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Error Code Constants
# =============================================================================

UNKNOWN_TOOL = "UNKNOWN_TOOL"
INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
NEEDS_TIME = "NEEDS_TIME"
NEEDS_AMOUNT = "NEEDS_AMOUNT"
NEEDS_VALUE = "NEEDS_VALUE"
RATE_LIMITED = "RATE_LIMITED"
NOT_CONNECTED = "NOT_CONNECTED"
NOT_FOUND = "NOT_FOUND"
TIMEOUT = "TIMEOUT"
TOOL_FAILED = "TOOL_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"

# Business failure codes and the flag each one sets on the envelope
_BUSINESS_FLAGS: dict[str, str] = {
    NEEDS_TIME: "needs_time",
    NEEDS_AMOUNT: "needs_amount",
    NEEDS_VALUE: "needs_value",
    RATE_LIMITED: "rate_limited",
    NOT_CONNECTED: "not_connected",
}

# =============================================================================
# Message Registry
# =============================================================================

_ERROR_MESSAGES: dict[str, str] = {
    UNKNOWN_TOOL: "No tool with that name is registered.",
    INVALID_ARGUMENTS: "The tool arguments were malformed.",
    NEEDS_TIME: "Could not understand the time. Ask the user when exactly.",
    NEEDS_AMOUNT: "Could not understand the amount. Ask the user for a number.",
    NEEDS_VALUE: "Could not understand the progress value. Ask the user for a number.",
    RATE_LIMITED: "Daily posting limit reached. Try again later.",
    NOT_CONNECTED: "The required account is not connected.",
    NOT_FOUND: "The referenced item was not found.",
    TIMEOUT: "The tool took too long to respond.",
    TOOL_FAILED: "The tool failed.",
    INTERNAL_ERROR: "An internal error occurred.",
}

APOLOGY_MESSAGE = (
    "Sorry, I ran into a problem while working on that. "
    "Please try again in a moment."
)


# =============================================================================
# Envelope Builders
# =============================================================================


def get_error_message(code: str) -> str:
    """Return the default message for an error code."""
    return _ERROR_MESSAGES.get(code, "An error occurred.")


def build_tool_success(**fields: Any) -> dict[str, Any]:
    """Build a success envelope with tool-specific fields."""
    return {"success": True, **fields}


def build_tool_failure(
    code: str,
    message: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """
    Build a failure envelope.

    Args:
        code: Error code constant (e.g. NEEDS_TIME, UNKNOWN_TOOL)
        message: Optional override message
        **fields: Extra tool-specific fields (e.g. remaining=0)

    Returns:
        {"success": False, "error": str, "code": str, <flag>: True, ...}
    """
    envelope: dict[str, Any] = {
        "success": False,
        "error": message if message is not None else get_error_message(code),
        "code": code,
    }
    flag = _BUSINESS_FLAGS.get(code)
    if flag is not None:
        envelope[flag] = True
    envelope.update(fields)
    return envelope


def is_business_failure(envelope: dict[str, Any]) -> bool:
    """True if the envelope carries one of the declared business failure codes."""
    return not envelope.get("success", False) and envelope.get("code") in _BUSINESS_FLAGS


__all__ = [
    "UNKNOWN_TOOL",
    "INVALID_ARGUMENTS",
    "NEEDS_TIME",
    "NEEDS_AMOUNT",
    "NEEDS_VALUE",
    "RATE_LIMITED",
    "NOT_CONNECTED",
    "NOT_FOUND",
    "TIMEOUT",
    "TOOL_FAILED",
    "INTERNAL_ERROR",
    "APOLOGY_MESSAGE",
    "get_error_message",
    "build_tool_success",
    "build_tool_failure",
    "is_business_failure",
]
