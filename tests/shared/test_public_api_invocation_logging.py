"""Tests for the ``public_api_instrumented`` decorator contract."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pytest

from packages.fieldguard_shared.errors import ErrorDetail, dependency_error
from packages.fieldguard_shared.logging import (
    CompletionContext,
    InvocationContext,
    public_api_instrumented,
)
from services.action.access_decision.implementation import (
    DefaultAccessDecisionService,
)
from services.action.access_decision.service import AccessDecisionService


class _RecordingConcern:
    """Concern double capturing every lifecycle event."""

    def __init__(self) -> None:
        self.invocations: list[InvocationContext] = []
        self.completions: list[CompletionContext] = []

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _ExplodingConcern:
    """Concern double that fails on every hook."""

    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("invocation hook broke")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("completion hook broke")


@dataclass(frozen=True)
class _Request:
    identity_id: str
    action: str


@dataclass(frozen=True)
class _Meta:
    trace_id: str
    envelope_id: str
    principal: str


@dataclass(frozen=True)
class _Result:
    allowed: bool
    reason: str
    errors: tuple[ErrorDetail, ...] = field(default_factory=tuple)


def _meta() -> _Meta:
    return _Meta(trace_id="trace-1", envelope_id="env-1", principal="user-1")


def test_decorator_reports_references_and_result_attributes() -> None:
    """Dotted id fields and result fields should flow into contexts."""
    concern = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_access_decision",
        id_fields=("request.identity_id", "request.action"),
        result_fields=("allowed", "reason"),
        concerns=(concern,),
    )
    def decide(*, request: _Request, meta: _Meta) -> _Result:
        return _Result(allowed=False, reason="policy_denied")

    result = decide(request=_Request("user-1", "DELETE"), meta=_meta())

    assert result.reason == "policy_denied"
    invocation = concern.invocations[0]
    assert invocation.api_name == "decide"
    assert invocation.trace_id == "trace-1"
    assert invocation.references == {
        "request_identity_id": "user-1",
        "request_action": "DELETE",
    }
    completion = concern.completions[0]
    assert completion.success is True
    assert completion.result_attributes == {
        "allowed": "False",
        "reason": "policy_denied",
    }


def test_decorator_marks_results_with_errors_as_failures() -> None:
    """Results carrying errors should complete unsuccessfully with categories."""
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_access_decision", concerns=(concern,))
    def health(*, meta: _Meta) -> _Result:
        return _Result(
            allowed=False,
            reason="internal_error",
            errors=(dependency_error("postgres unavailable"),),
        )

    health(meta=_meta())

    completion = concern.completions[0]
    assert completion.success is False
    assert completion.error_categories == ["dependency"]
    assert completion.errors[0].endswith("postgres unavailable")


def test_decorator_reports_and_reraises_exceptions() -> None:
    """Exceptions should be reported as failed completions and re-raised."""
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_access_decision", concerns=(concern,))
    def decide(*, request: _Request) -> _Result:
        raise ValueError("bad input")

    with pytest.raises(ValueError, match="bad input"):
        decide(request=_Request("user-1", "READ"))

    completion = concern.completions[0]
    assert completion.success is False
    assert completion.errors == ["ValueError: bad input"]
    assert completion.error_categories == ["internal"]


def test_concern_failures_never_change_the_result(caplog) -> None:
    """A failing concern should be logged and isolated from the call."""
    logger = logging.getLogger("tests.public_api")

    @public_api_instrumented(
        component_id="service_access_decision",
        concerns=(_ExplodingConcern(),),
        logger=logger,
    )
    def decide(*, request: _Request) -> _Result:
        return _Result(allowed=True, reason="ok")

    with caplog.at_level(logging.WARNING, logger="tests.public_api"):
        result = decide(request=_Request("user-1", "READ"))

    assert result.allowed is True
    failures = [
        record
        for record in caplog.records
        if record.getMessage() == "Public API instrumentation concern failed"
    ]
    assert len(failures) == 2


def test_service_public_methods_are_instrumented() -> None:
    """Every abstract Service API method should be decorated in the implementation."""
    missing = [
        name
        for name in sorted(AccessDecisionService.__abstractmethods__)
        if not hasattr(getattr(DefaultAccessDecisionService, name), "__wrapped__")
    ]

    assert missing == []
