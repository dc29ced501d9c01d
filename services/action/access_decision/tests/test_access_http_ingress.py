"""Tests for the access decision FastAPI ingress."""

from __future__ import annotations

from fastapi.testclient import TestClient

from packages.fieldguard_shared.envelope import failure, success
from packages.fieldguard_shared.errors import dependency_error
from services.action.access_decision.config import AccessDecisionSettings
from services.action.access_decision.domain import (
    AccessDecision,
    AccessHealthStatus,
    AccessRequest,
    ReasonCode,
    Role,
)
from services.action.access_decision.http_ingress import (
    build_access_http_app,
    decision_status_code,
)
from services.action.access_decision.service import AccessDecisionService

_PATH = "/v1/access/decide"


def _decision(reason: ReasonCode, *, role: Role | None = Role.ADMIN) -> AccessDecision:
    return AccessDecision(
        decision_id="01JABCDEF0123456789ABCDEFG",
        allowed=reason is ReasonCode.OK,
        reason=reason,
        role=role,
        message="msg",
    )


class _FakeAccessDecisionService(AccessDecisionService):
    """Service fake recording requests and returning a programmable decision."""

    def __init__(self) -> None:
        self.requests: list[AccessRequest] = []
        self.trace_ids: list[str] = []
        self.decision = _decision(ReasonCode.OK)
        self.persistence_ready = True
        self.health_errors: list = []

    def decide(self, *, request, meta=None):
        self.requests.append(request)
        self.trace_ids.append("" if meta is None else meta.trace_id)
        return self.decision

    def health(self, *, meta):
        if self.health_errors:
            return failure(meta=meta, errors=self.health_errors)
        return success(
            meta=meta,
            payload=AccessHealthStatus(
                service_ready=True,
                persistence_ready=self.persistence_ready,
                decisions_total=3,
                decisions_by_reason={"ok": 3},
                detail="ok",
            ),
        )


def _client(
    service: AccessDecisionService,
    settings: AccessDecisionSettings | None = None,
) -> TestClient:
    return TestClient(
        build_access_http_app(
            service=service, settings=settings or AccessDecisionSettings()
        )
    )


def test_allow_returns_200_with_decision_body() -> None:
    """Allowed decisions should map to 200 with the decision fields."""
    service = _FakeAccessDecisionService()

    response = _client(service).post(
        _PATH,
        json={"identity_id": "u1", "action": "READ", "resource_type": "voters"},
        headers={"X-Request-Id": "trace-123"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["allowed"] is True
    assert body["reason"] == "ok"
    assert body["role"] == "admin"
    assert body["decision_id"] == "01JABCDEF0123456789ABCDEFG"
    assert service.requests[0].identity_id == "u1"
    assert service.trace_ids == ["trace-123"]


def test_original_field_names_are_accepted() -> None:
    """Requests using user_id/table/record_id/data should map onto the request."""
    service = _FakeAccessDecisionService()

    _client(service).post(
        _PATH,
        json={
            "user_id": "u1",
            "action": "INSERT",
            "table": "families",
            "record_id": "r-9",
            "data": {"name": "x"},
        },
    )

    request = service.requests[0]
    assert request.identity_id == "u1"
    assert request.resource_type == "families"
    assert request.resource_id == "r-9"
    assert request.payload == {"name": "x"}


def test_deny_status_mapping() -> None:
    """Denies map to 403, rate limits to 429, and internal errors to 500."""
    service = _FakeAccessDecisionService()
    client = _client(service)
    body = {"identity_id": "u1", "action": "UPDATE", "resource_type": "users"}

    expected = {
        ReasonCode.POLICY_DENIED: 403,
        ReasonCode.GPS_INACTIVE: 403,
        ReasonCode.RATE_LIMIT_EXCEEDED: 429,
        ReasonCode.INTERNAL_ERROR: 500,
    }
    for reason, status in expected.items():
        service.decision = _decision(reason)
        response = client.post(_PATH, json=body)
        assert response.status_code == status
        assert response.json()["allowed"] is False
        assert response.json()["reason"] == reason.value


def test_deny_status_code_is_configurable() -> None:
    """deny_status_code=200 should return body-only denials."""
    settings = AccessDecisionSettings(deny_status_code=200)
    denied = _decision(ReasonCode.ACCOUNT_NOT_ACTIVE)
    limited = _decision(ReasonCode.RATE_LIMIT_EXCEEDED)

    assert decision_status_code(denied, settings=settings) == 200
    assert decision_status_code(limited, settings=settings) == 429


def test_malformed_json_is_internal_error_without_calling_service() -> None:
    """Invalid JSON should yield a 500 internal_error deny."""
    service = _FakeAccessDecisionService()

    response = _client(service).post(
        _PATH,
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 500
    body = response.json()
    assert body["allowed"] is False
    assert body["reason"] == "internal_error"
    assert body["errors"][0]["code"] == "INVALID_ARGUMENT"
    assert service.requests == []


def test_non_object_and_wrongly_typed_bodies_fail_closed() -> None:
    """JSON arrays and non-string fields should never reach the service."""
    service = _FakeAccessDecisionService()
    client = _client(service)

    array_response = client.post(_PATH, json=["u1", "READ"])
    typed_response = client.post(
        _PATH, json={"identity_id": 42, "action": "READ", "resource_type": "voters"}
    )

    assert array_response.status_code == 500
    assert typed_response.status_code == 500
    assert typed_response.json()["reason"] == "internal_error"
    assert service.requests == []


def test_cors_preflight_is_answered() -> None:
    """OPTIONS preflight should return CORS headers for configured origins."""
    response = _client(_FakeAccessDecisionService()).options(
        _PATH,
        headers={
            "Origin": "https://app.example.org",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_custom_path_is_served() -> None:
    """The decision route should follow the configured http_path."""
    settings = AccessDecisionSettings(http_path="/security-check")
    client = _client(_FakeAccessDecisionService(), settings)

    response = client.post(
        "/security-check",
        json={"identity_id": "u1", "action": "READ", "resource_type": "voters"},
    )

    assert response.status_code == 200
    assert client.post(_PATH, json={}).status_code == 404


def test_health_route_reflects_persistence_readiness() -> None:
    """Health should be 200 when persistence is ready and 503 otherwise."""
    service = _FakeAccessDecisionService()
    client = _client(service)

    ready = client.get("/health")
    service.persistence_ready = False
    degraded = client.get("/health")
    service.health_errors = [dependency_error("down")]
    failed = client.get("/health")

    assert ready.status_code == 200
    assert ready.json()["decisions_total"] == 3
    assert degraded.status_code == 503
    assert failed.status_code == 503
    assert failed.json()["errors"][0]["category"] == "dependency"
