"""Translate SQLAlchemy and psycopg failures into shared ``ErrorDetail`` values."""

from __future__ import annotations

import psycopg
from psycopg import errors as pg_errors
from sqlalchemy import exc as sa_exc

from packages.fieldguard_shared.errors import (
    ErrorCategory,
    ErrorDetail,
    codes,
    make_error,
)

# First match wins, so subclasses sit above their parents.
_RULES: tuple[tuple[tuple[type[BaseException], ...], ErrorCategory, str, str, bool], ...] = (
    (
        (pg_errors.UniqueViolation,),
        ErrorCategory.CONFLICT,
        codes.ALREADY_EXISTS,
        "record already exists",
        False,
    ),
    (
        (pg_errors.QueryCanceled,),
        ErrorCategory.DEPENDENCY,
        codes.DEPENDENCY_TIMEOUT,
        "postgres statement timed out",
        True,
    ),
    (
        (psycopg.OperationalError, sa_exc.OperationalError, sa_exc.TimeoutError),
        ErrorCategory.DEPENDENCY,
        codes.DEPENDENCY_UNAVAILABLE,
        "postgres unavailable",
        True,
    ),
    (
        (
            psycopg.InterfaceError,
            psycopg.ProgrammingError,
            sa_exc.InterfaceError,
            sa_exc.ProgrammingError,
        ),
        ErrorCategory.DEPENDENCY,
        codes.DEPENDENCY_FAILURE,
        "postgres request failed",
        False,
    ),
)


def driver_exception(exc: BaseException) -> BaseException:
    """Return the psycopg exception a SQLAlchemy ``DBAPIError`` wraps, if any."""
    if isinstance(exc, sa_exc.DBAPIError) and isinstance(exc.orig, BaseException):
        return exc.orig
    return exc


def is_database_error(exc: BaseException) -> bool:
    return isinstance(exc, (sa_exc.SQLAlchemyError, psycopg.Error))


def normalize_postgres_error(exc: BaseException) -> ErrorDetail:
    """Classify a database failure by the driver error underneath it."""
    cause = driver_exception(exc)
    metadata = {"exception_type": type(cause).__name__}
    for kinds, category, code, message, retryable in _RULES:
        if isinstance(cause, kinds) or isinstance(exc, kinds):
            return make_error(
                category, message, code=code, retryable=retryable, metadata=metadata
            )
    return make_error(
        ErrorCategory.INTERNAL,
        "unexpected postgres failure",
        code=codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )
