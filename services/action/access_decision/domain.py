"""Domain contracts for Access Decision Service."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from packages.fieldguard_shared.errors import ErrorDetail


def utc_now() -> datetime:
    """Return timezone-aware current UTC timestamp."""
    return datetime.now(UTC)


class Role(str, Enum):
    """Closed set of roles an identity may carry."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MONITOR = "monitor"
    VOTER = "voter"


class AccessAction(str, Enum):
    """Closed set of data actions gated by the decision engine."""

    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, raw: str) -> "AccessAction":
        """Parse one action name, accepting ``INSERT``/``SELECT`` aliases."""
        normalized = raw.strip().upper()
        normalized = _ACTION_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"unknown action: {raw!r}") from None

    @property
    def is_mutating(self) -> bool:
        return self is not AccessAction.READ


_ACTION_ALIASES = {"INSERT": "CREATE", "SELECT": "READ"}


class IdentityStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ReasonCode(str, Enum):
    """Exactly one reason code accompanies every decision."""

    OK = "ok"
    NOT_AUTHENTICATED = "not_authenticated"
    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_NOT_ACTIVE = "account_not_active"
    INVALID_ROLE = "invalid_role"
    POLICY_DENIED = "policy_denied"
    GPS_INACTIVE = "gps_inactive"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    INTERNAL_ERROR = "internal_error"


class PolicyDenialDetail(str, Enum):
    """Sub-reason attached to ``policy_denied`` decisions."""

    RESTRICTED_RESOURCE_FOR_ADMIN = "restricted_resource_for_admin"
    RESOURCE_NOT_ALLOWED_FOR_ROLE = "resource_not_allowed_for_role"
    DESTRUCTIVE_ACTION_FORBIDDEN = "destructive_action_forbidden"


REASON_MESSAGES: dict[ReasonCode, str] = {
    ReasonCode.OK: "Access granted",
    ReasonCode.NOT_AUTHENTICATED: "Caller identity is missing",
    ReasonCode.USER_NOT_FOUND: "User not found",
    ReasonCode.ACCOUNT_NOT_ACTIVE: "Account is not active",
    ReasonCode.INVALID_ROLE: "Invalid role",
    ReasonCode.POLICY_DENIED: "Action not permitted for role",
    ReasonCode.GPS_INACTIVE: "GPS must be active to modify voter data",
    ReasonCode.RATE_LIMIT_EXCEEDED: (
        "Rate limit exceeded. Too many operations in the last minute"
    ),
    ReasonCode.INTERNAL_ERROR: "Internal security error",
}


class AccessRequest(BaseModel):
    """One write-gating question: may this identity do this action on this resource?

    Fields stay loosely typed so malformed values reach the pipeline and are
    answered with a deny instead of failing before an audit entry is written.
    The original backend field names (``user_id``, ``table``, ``record_id``,
    ``data``) are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    identity_id: str = Field(
        default="", validation_alias=AliasChoices("identity_id", "user_id")
    )
    action: str = ""
    resource_type: str = Field(
        default="", validation_alias=AliasChoices("resource_type", "table")
    )
    resource_id: str | None = Field(
        default=None, validation_alias=AliasChoices("resource_id", "record_id")
    )
    payload: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("payload", "data")
    )


class Identity(BaseModel):
    """Identity record as read from the identity store."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity_id: str
    role: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == IdentityStatus.ACTIVE.value


class DeviceState(BaseModel):
    """Location-reporting session state for one monitor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity_id: str
    active: bool


class AuditEntry(BaseModel):
    """Immutable record of one decision."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry_id: str
    identity_id: str
    action: str
    resource_type: str
    resource_id: str | None = None
    payload: dict[str, Any] | None = None
    allowed: bool
    reason: ReasonCode
    detail: str | None = None
    role: str | None = None
    trace_id: str = ""
    created_at: datetime = Field(default_factory=utc_now)


class AccessDecision(BaseModel):
    """Allow/deny outcome; ``allowed`` is true exactly when ``reason`` is ``ok``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    decision_id: str
    allowed: bool
    reason: ReasonCode
    detail: str | None = None
    role: Role | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    message: str = ""
    errors: tuple[ErrorDetail, ...] = ()

    @model_validator(mode="after")
    def _allowed_matches_reason(self) -> "AccessDecision":
        if self.allowed != (self.reason is ReasonCode.OK):
            raise ValueError("allowed must be true exactly when reason is 'ok'")
        return self


class AccessHealthStatus(BaseModel):
    """Access Decision Service readiness and decision counters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    persistence_ready: bool
    decisions_total: int
    decisions_by_reason: dict[str, int]
    detail: str
