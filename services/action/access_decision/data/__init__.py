"""Access Decision Service persistence exports."""

from services.action.access_decision.data.repository import (
    InMemoryAuditLog,
    InMemoryDeviceStateStore,
    InMemoryIdentityStore,
    PostgresAuditLog,
    PostgresDeviceStateStore,
    PostgresIdentityStore,
)
from services.action.access_decision.data.runtime import AccessDecisionPostgresRuntime
from services.action.access_decision.data.schema import (
    AccessTables,
    build_access_tables,
)

__all__ = [
    "AccessDecisionPostgresRuntime",
    "AccessTables",
    "InMemoryAuditLog",
    "InMemoryDeviceStateStore",
    "InMemoryIdentityStore",
    "PostgresAuditLog",
    "PostgresDeviceStateStore",
    "PostgresIdentityStore",
    "build_access_tables",
]
