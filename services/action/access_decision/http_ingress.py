"""FastAPI ingress exposing the access decision endpoint and readiness probe."""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from packages.fieldguard_shared.envelope import EnvelopeKind, new_meta
from packages.fieldguard_shared.errors import codes, validation_error
from packages.fieldguard_shared.http import (
    InvalidJsonBodyError,
    create_app,
    get_header,
    read_json_body,
)
from packages.fieldguard_shared.ids import generate_ulid_str
from packages.fieldguard_shared.logging import get_logger
from services.action.access_decision.config import AccessDecisionSettings
from services.action.access_decision.domain import (
    REASON_MESSAGES,
    AccessDecision,
    AccessRequest,
    ReasonCode,
)
from services.action.access_decision.service import AccessDecisionService

_LOGGER = get_logger(__name__)

_HEADER_REQUEST_ID = "X-Request-Id"
_SOURCE = "access_decision_http"


def build_access_http_app(
    *, service: AccessDecisionService, settings: AccessDecisionSettings
) -> FastAPI:
    """Build the HTTP app bound to one service instance and its settings."""
    app = create_app(
        title="fieldguard-access",
        version="0.1.0",
        cors_allow_origins=settings.cors_allow_origins,
    )

    @app.post(settings.http_path)
    async def decide(request: Request) -> JSONResponse:
        trace_id = get_header(request, _HEADER_REQUEST_ID, required=False) or None
        try:
            body = await read_json_body(request)
            if not isinstance(body, dict):
                raise InvalidJsonBodyError(message="Body must be a JSON object")
            access_request = AccessRequest.model_validate(body)
        except (InvalidJsonBodyError, ValidationError) as exc:
            _LOGGER.warning("Rejected malformed access request: %s", exc)
            decision = _malformed_decision(str(exc))
            return _decision_response(decision=decision, settings=settings)

        meta = new_meta(
            kind=EnvelopeKind.COMMAND,
            source=_SOURCE,
            principal=access_request.identity_id.strip() or "anonymous",
            trace_id=trace_id,
        )
        decision = await run_in_threadpool(
            service.decide, request=access_request, meta=meta
        )
        return _decision_response(decision=decision, settings=settings)

    @app.get("/health")
    async def health() -> JSONResponse:
        meta = new_meta(kind=EnvelopeKind.COMMAND, source=_SOURCE, principal="operator")
        result = await run_in_threadpool(service.health, meta=meta)
        if not result.ok or result.payload is None:
            return JSONResponse(
                status_code=HTTPStatus.SERVICE_UNAVAILABLE,
                content={
                    "ok": False,
                    "errors": [_error_payload(error) for error in result.errors],
                },
            )
        status = result.payload.value
        return JSONResponse(
            status_code=(
                HTTPStatus.OK
                if status.persistence_ready
                else HTTPStatus.SERVICE_UNAVAILABLE
            ),
            content={"ok": status.persistence_ready, **status.model_dump(mode="json")},
        )

    return app


def decision_status_code(
    decision: AccessDecision, *, settings: AccessDecisionSettings
) -> int:
    """Map a decision onto the HTTP status convention."""
    if decision.allowed:
        return HTTPStatus.OK
    if decision.reason is ReasonCode.RATE_LIMIT_EXCEEDED:
        return HTTPStatus.TOO_MANY_REQUESTS
    if decision.reason is ReasonCode.INTERNAL_ERROR:
        return HTTPStatus.INTERNAL_SERVER_ERROR
    return settings.deny_status_code


def decision_payload(decision: AccessDecision) -> dict[str, object]:
    """Convert one decision into its JSON response body."""
    payload: dict[str, object] = {
        "allowed": decision.allowed,
        "reason": decision.reason.value,
        "timestamp": decision.timestamp.isoformat(),
        "decision_id": decision.decision_id,
        "message": decision.message,
    }
    if decision.detail is not None:
        payload["detail"] = decision.detail
    if decision.role is not None:
        payload["role"] = decision.role.value
    if decision.errors:
        payload["errors"] = [_error_payload(error) for error in decision.errors]
    return payload


def _decision_response(
    *, decision: AccessDecision, settings: AccessDecisionSettings
) -> JSONResponse:
    return JSONResponse(
        status_code=decision_status_code(decision, settings=settings),
        content=decision_payload(decision),
    )


def _malformed_decision(message: str) -> AccessDecision:
    return AccessDecision(
        decision_id=generate_ulid_str(),
        allowed=False,
        reason=ReasonCode.INTERNAL_ERROR,
        message=REASON_MESSAGES[ReasonCode.INTERNAL_ERROR],
        errors=(validation_error(message, code=codes.INVALID_ARGUMENT),),
    )


def _error_payload(error: object) -> dict[str, object]:
    category = getattr(error, "category", None)
    return {
        "code": getattr(error, "code", ""),
        "category": getattr(category, "value", category),
        "message": getattr(error, "message", ""),
        "retryable": bool(getattr(error, "retryable", False)),
    }
