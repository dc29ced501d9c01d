"""Tests for shared error factories and exception normalization."""

from __future__ import annotations

from concurrent.futures import TimeoutError as FuturesTimeoutError

from packages.fieldguard_shared.errors import (
    ErrorCategory,
    codes,
    dependency_error,
    exception_to_error,
    validation_error,
)


def test_factories_apply_category_and_retryability() -> None:
    validation = validation_error("bad", metadata={"field": "action"})
    dependency = dependency_error("down")

    assert validation.category is ErrorCategory.VALIDATION
    assert validation.code == codes.VALIDATION_ERROR
    assert validation.retryable is False
    assert validation.metadata == {"field": "action"}
    assert dependency.category is ErrorCategory.DEPENDENCY
    assert dependency.retryable is True


def test_timeouts_and_connection_failures_are_dependency_errors() -> None:
    """Collaborator timeouts and outages should map to retryable dependency errors."""
    timeout = exception_to_error(FuturesTimeoutError())
    unavailable = exception_to_error(ConnectionError("refused"))

    assert timeout.code == codes.DEPENDENCY_TIMEOUT
    assert timeout.message == "dependency timeout"
    assert unavailable.code == codes.DEPENDENCY_UNAVAILABLE
    assert unavailable.retryable is True


def test_builtin_exceptions_map_to_matching_categories() -> None:
    assert exception_to_error(ValueError("x")).category is ErrorCategory.VALIDATION
    assert exception_to_error(KeyError("x")).category is ErrorCategory.NOT_FOUND
    assert exception_to_error(PermissionError("x")).category is ErrorCategory.POLICY


def test_unknown_exceptions_are_internal() -> None:
    error = exception_to_error(RuntimeError("boom"))

    assert error.category is ErrorCategory.INTERNAL
    assert error.code == codes.UNEXPECTED_EXCEPTION
    assert error.metadata == {"exception_type": "RuntimeError"}
