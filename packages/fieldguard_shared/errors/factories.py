"""Builders for ``ErrorDetail`` values, one per error category.

Each category has a default code and retry hint; callers override the code
when they have a more specific one.
"""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail

_CATEGORY_DEFAULTS: dict[ErrorCategory, tuple[str, bool]] = {
    ErrorCategory.VALIDATION: (codes.VALIDATION_ERROR, False),
    ErrorCategory.NOT_FOUND: (codes.NOT_FOUND, False),
    ErrorCategory.CONFLICT: (codes.CONFLICT, False),
    ErrorCategory.POLICY: (codes.POLICY_VIOLATION, False),
    ErrorCategory.DEPENDENCY: (codes.DEPENDENCY_FAILURE, True),
    ErrorCategory.INTERNAL: (codes.INTERNAL_ERROR, False),
}


def make_error(
    category: ErrorCategory,
    message: str,
    *,
    code: str | None = None,
    retryable: bool | None = None,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    default_code, default_retryable = _CATEGORY_DEFAULTS[category]
    return ErrorDetail(
        code=code or default_code,
        message=message,
        category=category,
        retryable=default_retryable if retryable is None else retryable,
        metadata=dict(metadata or {}),
    )


def validation_error(
    message: str, *, code: str | None = None, metadata: Mapping[str, str] | None = None
) -> ErrorDetail:
    return make_error(ErrorCategory.VALIDATION, message, code=code, metadata=metadata)


def not_found_error(
    message: str, *, code: str | None = None, metadata: Mapping[str, str] | None = None
) -> ErrorDetail:
    return make_error(ErrorCategory.NOT_FOUND, message, code=code, metadata=metadata)


def conflict_error(
    message: str, *, code: str | None = None, metadata: Mapping[str, str] | None = None
) -> ErrorDetail:
    return make_error(ErrorCategory.CONFLICT, message, code=code, metadata=metadata)


def policy_error(
    message: str, *, code: str | None = None, metadata: Mapping[str, str] | None = None
) -> ErrorDetail:
    return make_error(ErrorCategory.POLICY, message, code=code, metadata=metadata)


def dependency_error(
    message: str,
    *,
    code: str | None = None,
    retryable: bool = True,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Collaborator or storage failure; retryable unless the caller says not."""
    return make_error(
        ErrorCategory.DEPENDENCY,
        message,
        code=code,
        retryable=retryable,
        metadata=metadata,
    )


def internal_error(
    message: str, *, code: str | None = None, metadata: Mapping[str, str] | None = None
) -> ErrorDetail:
    return make_error(ErrorCategory.INTERNAL, message, code=code, metadata=metadata)
