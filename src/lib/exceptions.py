"""
Custom exception hierarchy for Shree.

Provides structured exception types for all subsystems:
- Configuration and validation
- Persistence and state transitions
- External collaborators (model provider, mail, social, spreadsheets)

All exceptions inherit from ShreeException, enabling catch-all for
Shree-specific errors while keeping the ability to catch specific
error types. Tool executors raise these; the tool dispatcher converts
them into failure envelopes.
"""

from __future__ import annotations


class ShreeException(Exception):
    """Base exception for all Shree errors."""


class ConfigurationError(ShreeException):
    """Missing environment variables, invalid config values, or startup failures."""


class ValidationError(ShreeException):
    """Input validation, parsing, or type conversion failures."""


class NotFoundError(ShreeException):
    """A record the caller referenced does not exist for this user."""


class StateError(ShreeException):
    """Invalid state transitions (e.g. acknowledging an acknowledged message)."""


class DatabaseError(ShreeException):
    """Database connection, query, or migration failures."""


class ServiceError(ShreeException):
    """Service-layer failures."""


class ExternalServiceError(ServiceError):
    """External API call failures (Redis, mail, social, spreadsheets, search)."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ModelProviderError(ExternalServiceError):
    """The conversational model could not be reached or returned garbage."""


class NotConnectedError(ExternalServiceError):
    """The user has not connected the account a tool needs."""


class RateLimitExceededError(ServiceError):
    """A rate-limited operation was attempted with no remaining budget."""

    def __init__(self, message: str, remaining: int = 0) -> None:
        super().__init__(message)
        self.remaining = remaining
