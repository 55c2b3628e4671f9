"""
Lib package for Shree.

Contains shared utilities:
- exceptions.py: Exception hierarchy
- errors.py: Tool failure codes and envelope builders
- logging.py: structlog setup
- rate_limit.py: Rolling-window post limiter
- timeparse.py: Natural-language time and amount parsing
"""

from src.lib.errors import (
    INTERNAL_ERROR,
    NOT_CONNECTED,
    NOT_FOUND,
    RATE_LIMITED,
    TIMEOUT,
    TOOL_FAILED,
    UNKNOWN_TOOL,
    build_tool_failure,
    build_tool_success,
    get_error_message,
)
from src.lib.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ModelProviderError,
    NotConnectedError,
    NotFoundError,
    ShreeException,
    StateError,
    ValidationError,
)

__all__ = [
    # Errors
    "UNKNOWN_TOOL",
    "RATE_LIMITED",
    "NOT_CONNECTED",
    "NOT_FOUND",
    "TIMEOUT",
    "TOOL_FAILED",
    "INTERNAL_ERROR",
    "get_error_message",
    "build_tool_failure",
    "build_tool_success",
    # Exceptions
    "ShreeException",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "StateError",
    "ExternalServiceError",
    "ModelProviderError",
    "NotConnectedError",
]
