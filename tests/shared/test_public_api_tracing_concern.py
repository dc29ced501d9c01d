"""Unit tests for public API tracing concern behavior."""

from __future__ import annotations

from opentelemetry.trace import StatusCode

from packages.fieldguard_shared.logging.public_api import (
    CompletionContext,
    InvocationContext,
    PublicApiTracingConcern,
)


class _FakeSpan:
    """In-memory fake span capturing attributes and lifecycle updates."""

    def __init__(self) -> None:
        self.attributes: dict[str, object] = {}
        self.exceptions: list[Exception] = []
        self.statuses: list[object] = []

    def set_attribute(self, key: str, value: object) -> None:
        self.attributes[key] = value

    def record_exception(self, exception: Exception) -> None:
        self.exceptions.append(exception)

    def set_status(self, status: object) -> None:
        self.statuses.append(status)


class _FakeSpanManager:
    """Fake span context manager used by the fake tracer."""

    def __init__(self, span: _FakeSpan) -> None:
        self.span = span
        self.exited = False

    def __enter__(self) -> _FakeSpan:
        return self.span

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.exited = True


class _FakeTracer:
    """Fake tracer returning tracked span context managers."""

    def __init__(self) -> None:
        self.names: list[str] = []
        self.managers: list[_FakeSpanManager] = []

    def start_as_current_span(self, name: str) -> _FakeSpanManager:
        self.names.append(name)
        manager = _FakeSpanManager(_FakeSpan())
        self.managers.append(manager)
        return manager


def test_tracing_concern_starts_and_completes_span_with_attributes() -> None:
    """Completion should set standard attributes and close span context."""
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    invocation = InvocationContext(
        component_id="service_access_decision",
        api_name="decide",
        trace_id="trace-1",
        envelope_id="env-1",
        principal="user-1",
        references={"request_identity_id": "user-1"},
    )

    concern.on_invocation(invocation)
    concern.on_completion(
        CompletionContext(
            invocation=invocation,
            success=True,
            duration_ms=12.3,
            errors=[],
            error_categories=[],
            result_attributes={"allowed": "True", "reason": "ok"},
        )
    )

    assert tracer.names == ["public_api.service_access_decision.decide"]
    manager = tracer.managers[0]
    attributes = manager.span.attributes
    assert manager.exited is True
    assert attributes["component_id"] == "service_access_decision"
    assert attributes["api_name"] == "decide"
    assert attributes["trace_id"] == "trace-1"
    assert attributes["reference.request_identity_id"] == "user-1"
    assert attributes["outcome"] == "success"
    assert attributes["errors.count"] == 0
    assert attributes["result.reason"] == "ok"
    assert manager.span.statuses == []


def test_tracing_concern_records_exception_for_failures() -> None:
    """Failed completions should mark the span as errored."""
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    invocation = InvocationContext(
        component_id="service_access_decision",
        api_name="health",
        trace_id=None,
        envelope_id=None,
        principal=None,
        references={},
    )

    concern.on_invocation(invocation)
    concern.on_completion(
        CompletionContext(
            invocation=invocation,
            success=False,
            duration_ms=9.0,
            errors=["DEPENDENCY_UNAVAILABLE: postgres unavailable"],
            error_categories=["dependency"],
        )
    )

    manager = tracer.managers[0]
    assert manager.exited is True
    assert manager.span.attributes["outcome"] == "failure"
    assert manager.span.attributes["errors.count"] == 1
    assert "trace_id" not in manager.span.attributes
    assert len(manager.span.exceptions) == 1
    assert manager.span.statuses[0].status_code is StatusCode.ERROR


def test_tracing_concern_closes_nested_spans_in_order() -> None:
    """Nested invocations should close the innermost span first."""
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    outer = InvocationContext("service_access_decision", "decide", None, None, None, {})
    inner = InvocationContext("service_access_decision", "health", None, None, None, {})

    concern.on_invocation(outer)
    concern.on_invocation(inner)
    concern.on_completion(CompletionContext(inner, True, 1.0, [], []))

    assert [manager.exited for manager in tracer.managers] == [False, True]

    concern.on_completion(CompletionContext(outer, True, 2.0, [], []))

    assert [manager.exited for manager in tracer.managers] == [True, True]
    # Completion without an open span is ignored.
    concern.on_completion(CompletionContext(outer, True, 2.0, [], []))
