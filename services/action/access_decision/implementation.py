"""Concrete Access Decision Service with a fail-closed decision pipeline."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Any, TypeVar

from packages.fieldguard_shared.config import FieldguardSettings
from packages.fieldguard_shared.envelope import (
    Envelope,
    EnvelopeMeta,
    failure,
    success,
    validate_meta,
)
from packages.fieldguard_shared.errors import (
    ErrorDetail,
    codes,
    exception_to_error,
    validation_error,
)
from packages.fieldguard_shared.ids import generate_ulid_str
from packages.fieldguard_shared.logging import (
    fields,
    get_logger,
    log_context,
    public_api_instrumented,
)
from resources.substrates.postgres.errors import (
    is_database_error,
    normalize_postgres_error,
)
from services.action.access_decision.component import SERVICE_COMPONENT_ID
from services.action.access_decision.config import (
    AccessDecisionSettings,
    resolve_access_decision_settings,
)
from services.action.access_decision.data.repository import (
    PostgresAuditLog,
    PostgresDeviceStateStore,
    PostgresIdentityStore,
)
from services.action.access_decision.data.runtime import AccessDecisionPostgresRuntime
from services.action.access_decision.domain import (
    REASON_MESSAGES,
    AccessAction,
    AccessDecision,
    AccessHealthStatus,
    AccessRequest,
    AuditEntry,
    ReasonCode,
    Role,
    utc_now,
)
from services.action.access_decision.interfaces import (
    AuditLog,
    DeviceStateStore,
    IdentityStore,
)
from services.action.access_decision.policy import RolePolicyTable
from services.action.access_decision.service import AccessDecisionService

_LOGGER = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _Outcome:
    """Pipeline result before it is stamped, audited, and returned."""

    reason: ReasonCode
    action: str
    detail: str | None = None
    role: Role | None = None
    errors: tuple[ErrorDetail, ...] = ()


class DefaultAccessDecisionService(AccessDecisionService):
    """Default decision engine over injected identity, device, and audit stores."""

    def __init__(
        self,
        *,
        settings: AccessDecisionSettings,
        identity_store: IdentityStore,
        device_store: DeviceStateStore,
        audit_log: AuditLog,
        policies: RolePolicyTable | None = None,
        clock: Callable[[], datetime] = utc_now,
        runtime: AccessDecisionPostgresRuntime | None = None,
    ) -> None:
        self._settings = settings
        self._identity_store = identity_store
        self._device_store = device_store
        self._audit_log = audit_log
        self._policies = policies or RolePolicyTable()
        self._clock = clock
        self._runtime = runtime
        self._executor = ThreadPoolExecutor(
            max_workers=settings.collaborator_workers,
            thread_name_prefix="access-decision",
        )
        self._counters: Counter[str] = Counter()
        self._counters_lock = Lock()

    @classmethod
    def from_settings(
        cls, settings: FieldguardSettings
    ) -> "DefaultAccessDecisionService":
        """Build the service with Postgres collaborators from root settings."""
        access_settings = resolve_access_decision_settings(settings)
        runtime = AccessDecisionPostgresRuntime.from_settings(
            settings, access_settings=access_settings
        )
        return cls(
            settings=access_settings,
            identity_store=PostgresIdentityStore(runtime),
            device_store=PostgresDeviceStateStore(runtime),
            audit_log=PostgresAuditLog(runtime),
            runtime=runtime,
        )

    @property
    def settings(self) -> AccessDecisionSettings:
        return self._settings

    @property
    def runtime(self) -> AccessDecisionPostgresRuntime | None:
        return self._runtime

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("request.identity_id", "request.action", "request.resource_type"),
        result_fields=("allowed", "reason"),
    )
    def decide(
        self, *, request: AccessRequest, meta: EnvelopeMeta | None = None
    ) -> AccessDecision:
        """Run the ordered pipeline, audit the outcome, and return the decision."""
        trace_id = "" if meta is None else meta.trace_id
        outcome = self._evaluate(request)
        decision = self._audit(request=request, outcome=outcome, trace_id=trace_id)

        with self._counters_lock:
            self._counters[decision.reason.value] += 1
        self._log_decision(request=request, decision=decision, trace_id=trace_id)
        return decision

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    def health(self, *, meta: EnvelopeMeta) -> Envelope[AccessHealthStatus]:
        """Return readiness, persistence reachability, and decision counters."""
        try:
            validate_meta(meta)
        except ValueError as exc:
            return failure(
                meta=meta,
                errors=[validation_error(str(exc), code=codes.INVALID_ARGUMENT)],
            )

        try:
            persistence_ready = bool(self._call(self._audit_log.is_healthy))
        except Exception:  # noqa: BLE001
            persistence_ready = False

        with self._counters_lock:
            by_reason = dict(self._counters)

        return success(
            meta=meta,
            payload=AccessHealthStatus(
                service_ready=True,
                persistence_ready=persistence_ready,
                decisions_total=sum(by_reason.values()),
                decisions_by_reason=by_reason,
                detail="ok" if persistence_ready else "persistence unavailable",
            ),
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._runtime is not None:
            self._runtime.dispose()

    def _evaluate(self, request: AccessRequest) -> _Outcome:
        """Apply the short-circuiting checks in their fixed order."""
        raw_action = request.action.strip().upper()
        identity_id = request.identity_id.strip()
        if not identity_id:
            return _Outcome(reason=ReasonCode.NOT_AUTHENTICATED, action=raw_action)

        try:
            action = AccessAction.parse(request.action)
        except ValueError as exc:
            return _Outcome(
                reason=ReasonCode.INTERNAL_ERROR,
                action=raw_action,
                errors=(validation_error(str(exc), code=codes.INVALID_ARGUMENT),),
            )

        resource_type = request.resource_type.strip()
        if not resource_type:
            return _Outcome(
                reason=ReasonCode.INTERNAL_ERROR,
                action=action.value,
                errors=(
                    validation_error(
                        "resource_type is required", code=codes.INVALID_ARGUMENT
                    ),
                ),
            )

        try:
            return self._evaluate_identity(
                identity_id=identity_id, action=action, resource_type=resource_type
            )
        except Exception as exc:  # noqa: BLE001
            return self._fault(exc, action=action.value, stage="evaluate")

    def _evaluate_identity(
        self, *, identity_id: str, action: AccessAction, resource_type: str
    ) -> _Outcome:
        identity = self._call(self._identity_store.get_identity, identity_id)
        if identity is None:
            return _Outcome(reason=ReasonCode.USER_NOT_FOUND, action=action.value)

        role = self._policies.resolve_role(identity.role)
        if not identity.is_active:
            return _Outcome(
                reason=ReasonCode.ACCOUNT_NOT_ACTIVE, action=action.value, role=role
            )
        if role is None:
            return _Outcome(
                reason=ReasonCode.INVALID_ROLE,
                action=action.value,
            )

        denial = self._policies.evaluate(
            role=role, action=action, resource_type=resource_type
        )
        if denial is not None:
            return _Outcome(
                reason=ReasonCode.POLICY_DENIED,
                action=action.value,
                detail=denial.value,
                role=role,
            )

        if (
            role is Role.MONITOR
            and resource_type == self._settings.gps_required_resource
            and action.is_mutating
        ):
            device = self._call(self._device_store.get_device_state, identity_id)
            if device is None or not device.active:
                return _Outcome(
                    reason=ReasonCode.GPS_INACTIVE, action=action.value, role=role
                )

        if action in self._settings.rate_limited_actions:
            recent = self._call(
                self._audit_log.count_recent,
                identity_id,
                action,
                self._settings.rate_window_seconds,
            )
            if recent > self._settings.rate_limit_max:
                return _Outcome(
                    reason=ReasonCode.RATE_LIMIT_EXCEEDED,
                    action=action.value,
                    role=role,
                )

        return _Outcome(reason=ReasonCode.OK, action=action.value, role=role)

    def _audit(
        self, *, request: AccessRequest, outcome: _Outcome, trace_id: str
    ) -> AccessDecision:
        """Append one audit entry; an allow that cannot be audited becomes a deny."""
        decision_id = generate_ulid_str()
        timestamp = self._clock()
        entry = AuditEntry(
            entry_id=decision_id,
            identity_id=request.identity_id.strip(),
            action=outcome.action,
            resource_type=request.resource_type.strip(),
            resource_id=request.resource_id,
            payload=request.payload,
            allowed=outcome.reason is ReasonCode.OK,
            reason=outcome.reason,
            detail=outcome.detail,
            role=None if outcome.role is None else outcome.role.value,
            trace_id=trace_id,
            created_at=timestamp,
        )
        try:
            self._append_audit(entry)
        except Exception as exc:  # noqa: BLE001
            fault = self._fault(exc, action=outcome.action, stage="audit")
            if outcome.reason is ReasonCode.OK:
                outcome = _Outcome(
                    reason=ReasonCode.INTERNAL_ERROR,
                    action=outcome.action,
                    role=outcome.role,
                    errors=fault.errors,
                )
            else:
                outcome = _Outcome(
                    reason=outcome.reason,
                    action=outcome.action,
                    detail=outcome.detail,
                    role=outcome.role,
                    errors=(*outcome.errors, *fault.errors),
                )

        return AccessDecision(
            decision_id=decision_id,
            allowed=outcome.reason is ReasonCode.OK,
            reason=outcome.reason,
            detail=outcome.detail,
            role=outcome.role,
            timestamp=timestamp,
            message=REASON_MESSAGES[outcome.reason],
            errors=outcome.errors,
        )

    def _append_audit(self, entry: AuditEntry) -> None:
        """Append one entry; a slow append is waited out, never abandoned.

        The stored entry must agree with the returned decision, so the
        outcome is only settled once the write has landed or failed. The
        backing store bounds the wait (Postgres ``statement_timeout``).
        """
        future = self._executor.submit(self._audit_log.append, entry)
        timeout = self._settings.collaborator_timeout_seconds
        try:
            future.result(timeout=timeout)
        except FuturesTimeoutError:
            with log_context(
                {fields.STAGE: "audit", fields.DURATION_MS: timeout * 1000}
            ):
                _LOGGER.warning("Audit append exceeded timeout; awaiting completion")
            future.result()

    def _call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run one collaborator call on the worker pool, bounded by the timeout."""
        future = self._executor.submit(fn, *args)
        timeout = self._settings.collaborator_timeout_seconds
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise TimeoutError(
                f"{getattr(fn, '__qualname__', 'collaborator')} timed out after {timeout}s"
            ) from None

    def _fault(self, exc: Exception, *, action: str, stage: str) -> _Outcome:
        error = _normalize_exception(exc)
        with log_context(
            {fields.STAGE: stage, fields.ERRORS: [f"{error.code}: {error.message}"]}
        ):
            _LOGGER.warning("Access decision collaborator failed", exc_info=exc)
        return _Outcome(reason=ReasonCode.INTERNAL_ERROR, action=action, errors=(error,))

    def _log_decision(
        self, *, request: AccessRequest, decision: AccessDecision, trace_id: str
    ) -> None:
        with log_context(
            {
                fields.EVENT: fields.ACCESS_DECISION_EVENT,
                fields.TRACE_ID: trace_id or None,
                fields.IDENTITY_ID: request.identity_id or None,
                fields.ACTION: request.action,
                fields.RESOURCE_TYPE: request.resource_type,
                fields.RESOURCE_ID: request.resource_id,
                fields.ALLOWED: decision.allowed,
                fields.REASON: decision.reason.value,
                fields.ROLE: None if decision.role is None else decision.role.value,
            }
        ):
            _LOGGER.info("access decision")


def _normalize_exception(exc: Exception) -> ErrorDetail:
    """Map database failures through the Postgres taxonomy, others generically."""
    if is_database_error(exc):
        return normalize_postgres_error(exc)
    return exception_to_error(exc)
