"""Access Decision Service package exports."""

from packages.fieldguard_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta
from packages.fieldguard_shared.errors import ErrorCategory, ErrorDetail
from services.action.access_decision.component import MANIFEST, SERVICE_COMPONENT_ID
from services.action.access_decision.config import (
    AccessDecisionSettings,
    resolve_access_decision_settings,
)
from services.action.access_decision.data.repository import (
    InMemoryAuditLog,
    InMemoryDeviceStateStore,
    InMemoryIdentityStore,
    PostgresAuditLog,
    PostgresDeviceStateStore,
    PostgresIdentityStore,
)
from services.action.access_decision.data.runtime import AccessDecisionPostgresRuntime
from services.action.access_decision.domain import (
    AccessAction,
    AccessDecision,
    AccessHealthStatus,
    AccessRequest,
    AuditEntry,
    DeviceState,
    Identity,
    IdentityStatus,
    PolicyDenialDetail,
    ReasonCode,
    Role,
)
from services.action.access_decision.implementation import (
    DefaultAccessDecisionService,
)
from services.action.access_decision.interfaces import (
    AuditLog,
    DeviceStateStore,
    IdentityStore,
)
from services.action.access_decision.policy import (
    DEFAULT_ROLE_POLICIES,
    RolePolicy,
    RolePolicyTable,
)
from services.action.access_decision.service import (
    AccessDecisionService,
    build_access_decision_service,
)

__all__ = [
    "AccessAction",
    "AccessDecision",
    "AccessDecisionPostgresRuntime",
    "AccessDecisionService",
    "AccessDecisionSettings",
    "AccessHealthStatus",
    "AccessRequest",
    "AuditEntry",
    "AuditLog",
    "DEFAULT_ROLE_POLICIES",
    "DefaultAccessDecisionService",
    "DeviceState",
    "DeviceStateStore",
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "ErrorCategory",
    "ErrorDetail",
    "Identity",
    "IdentityStatus",
    "IdentityStore",
    "InMemoryAuditLog",
    "InMemoryDeviceStateStore",
    "InMemoryIdentityStore",
    "MANIFEST",
    "PolicyDenialDetail",
    "PostgresAuditLog",
    "PostgresDeviceStateStore",
    "PostgresIdentityStore",
    "ReasonCode",
    "Role",
    "RolePolicy",
    "RolePolicyTable",
    "SERVICE_COMPONENT_ID",
    "build_access_decision_service",
    "resolve_access_decision_settings",
]
