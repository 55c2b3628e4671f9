"""
Tests for the exception hierarchy and tool result envelopes.

Verifies:
- All exceptions are subclasses of ShreeException
- Collaborator errors carry provider and status code
- Business failure envelopes carry their flag
"""

from __future__ import annotations

import pytest

from src.lib.errors import (
    INVALID_ARGUMENTS,
    NEEDS_AMOUNT,
    NEEDS_TIME,
    NEEDS_VALUE,
    NOT_CONNECTED,
    RATE_LIMITED,
    TIMEOUT,
    build_tool_failure,
    build_tool_success,
    get_error_message,
    is_business_failure,
)
from src.lib.exceptions import (
    ConfigurationError,
    DatabaseError,
    ExternalServiceError,
    ModelProviderError,
    NotConnectedError,
    NotFoundError,
    RateLimitExceededError,
    ServiceError,
    ShreeException,
    StateError,
    ValidationError,
)

EXCEPTION_CLASSES = [
    ConfigurationError,
    ValidationError,
    NotFoundError,
    StateError,
    DatabaseError,
    ServiceError,
    ExternalServiceError,
    ModelProviderError,
    NotConnectedError,
    RateLimitExceededError,
]


class TestExceptionHierarchy:
    @pytest.mark.parametrize("exc_class", EXCEPTION_CLASSES)
    def test_all_are_shree_exceptions(self, exc_class: type[ShreeException]) -> None:
        assert issubclass(exc_class, ShreeException)

    def test_collaborator_errors_are_service_errors(self) -> None:
        for exc_class in (ExternalServiceError, ModelProviderError, NotConnectedError):
            assert issubclass(exc_class, ServiceError)

    def test_external_error_carries_provider(self) -> None:
        error = NotConnectedError("gmail rejected the credentials", provider="gmail", status_code=401)
        assert str(error) == "gmail rejected the credentials"
        assert (error.provider, error.status_code) == ("gmail", 401)

    def test_rate_limit_carries_remaining(self) -> None:
        assert RateLimitExceededError("slow down").remaining == 0
        assert RateLimitExceededError("slow down", remaining=2).remaining == 2


class TestEnvelopes:
    def test_success(self) -> None:
        assert build_tool_success(note_id=3) == {"success": True, "note_id": 3}

    @pytest.mark.parametrize(
        ("code", "flag"),
        [
            (NEEDS_TIME, "needs_time"),
            (NEEDS_AMOUNT, "needs_amount"),
            (NEEDS_VALUE, "needs_value"),
            (RATE_LIMITED, "rate_limited"),
            (NOT_CONNECTED, "not_connected"),
        ],
    )
    def test_business_failures_set_flag(self, code: str, flag: str) -> None:
        envelope = build_tool_failure(code)
        assert envelope["success"] is False
        assert envelope[flag] is True
        assert envelope["error"] == get_error_message(code)
        assert is_business_failure(envelope)

    def test_other_failures_have_no_flag(self) -> None:
        envelope = build_tool_failure(TIMEOUT, "search timed out after 30s")
        assert envelope == {"success": False, "error": "search timed out after 30s", "code": TIMEOUT}
        assert not is_business_failure(envelope)

    def test_extra_fields(self) -> None:
        envelope = build_tool_failure(INVALID_ARGUMENTS, details=[{"field": "title", "message": "required"}])
        assert envelope["details"][0]["field"] == "title"

    def test_unknown_code_message(self) -> None:
        assert get_error_message("NOPE") == "An error occurred."
