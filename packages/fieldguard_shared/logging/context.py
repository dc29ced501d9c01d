"""Structured log context carried in a ``ContextVar``.

Bound fields follow the current thread or task, so the threadpool decision
path and the async HTTP handlers both stamp the same correlation fields on
their log lines.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping

_bound: ContextVar[tuple[tuple[str, str], ...]] = ContextVar(
    "fieldguard_log_context", default=()
)


def get_context() -> dict[str, str]:
    return dict(_bound.get())


def bind_context(**values: object) -> None:
    """Add fields as strings; ``None`` values are skipped."""
    merged = get_context()
    merged.update((key, str(value)) for key, value in values.items() if value is not None)
    _bound.set(tuple(merged.items()))


def clear_context(*keys: str) -> None:
    """Drop the named fields, or every field when none are named."""
    if keys:
        _bound.set(tuple(item for item in _bound.get() if item[0] not in keys))
    else:
        _bound.set(())


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    token = _bound.set(_bound.get())
    try:
        bind_context(**values)
        yield
    finally:
        _bound.reset(token)
