"""In-memory and Postgres collaborators for the Access Decision Service."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from threading import Lock

from sqlalchemy import String, cast, func, insert, select

from services.action.access_decision.data.runtime import AccessDecisionPostgresRuntime
from services.action.access_decision.domain import (
    AccessAction,
    AuditEntry,
    DeviceState,
    Identity,
    utc_now,
)

GPS_ACTIVE = "active"


class InMemoryIdentityStore:
    """Dictionary-backed identity store for tests and local runs."""

    def __init__(self, identities: Iterable[Identity] = ()) -> None:
        self._identities = {item.identity_id: item for item in identities}

    def put(self, identity: Identity) -> None:
        self._identities[identity.identity_id] = identity

    def get_identity(self, identity_id: str) -> Identity | None:
        return self._identities.get(identity_id)


class InMemoryDeviceStateStore:
    """Dictionary-backed device-state store for tests and local runs."""

    def __init__(self, states: Iterable[DeviceState] = ()) -> None:
        self._states = {item.identity_id: item for item in states}

    def set_active(self, identity_id: str, active: bool) -> None:
        self._states[identity_id] = DeviceState(identity_id=identity_id, active=active)

    def get_device_state(self, identity_id: str) -> DeviceState | None:
        return self._states.get(identity_id)


class InMemoryAuditLog:
    """Append-only in-memory audit log with a trailing-window counter."""

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._entries: list[AuditEntry] = []
        self._lock = Lock()

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def count_recent(
        self, identity_id: str, action: AccessAction, window_seconds: int
    ) -> int:
        cutoff = self._clock() - timedelta(seconds=window_seconds)
        with self._lock:
            return sum(
                1
                for entry in self._entries
                if entry.identity_id == identity_id
                and entry.action == action.value
                and entry.created_at >= cutoff
            )

    def is_healthy(self) -> bool:
        return True


class PostgresIdentityStore:
    """Identity lookups against the application's user table."""

    def __init__(self, runtime: AccessDecisionPostgresRuntime) -> None:
        self._sessions = runtime.schema_sessions
        self._table = runtime.tables.identities

    def get_identity(self, identity_id: str) -> Identity | None:
        stmt = select(self._table.c.role, self._table.c.status).where(
            cast(self._table.c.user_id, String) == identity_id
        )
        with self._sessions.session() as session:
            row = session.execute(stmt).mappings().first()
        if row is None:
            return None
        return Identity(
            identity_id=identity_id,
            role=str(row["role"] or ""),
            status=str(row["status"] or ""),
        )


class PostgresDeviceStateStore:
    """Device-state lookups against the application's monitor table."""

    def __init__(self, runtime: AccessDecisionPostgresRuntime) -> None:
        self._sessions = runtime.schema_sessions
        self._table = runtime.tables.devices

    def get_device_state(self, identity_id: str) -> DeviceState | None:
        stmt = select(self._table.c.gps_status).where(
            cast(self._table.c.user_id, String) == identity_id
        )
        with self._sessions.session() as session:
            row = session.execute(stmt).mappings().first()
        if row is None:
            return None
        return DeviceState(
            identity_id=identity_id,
            active=row["gps_status"] == GPS_ACTIVE,
        )


class PostgresAuditLog:
    """Append-only audit rows in the service-owned audit table."""

    def __init__(
        self,
        runtime: AccessDecisionPostgresRuntime,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._runtime = runtime
        self._sessions = runtime.schema_sessions
        self._table = runtime.tables.audit_entries
        self._clock = clock

    def append(self, entry: AuditEntry) -> None:
        stmt = insert(self._table).values(
            id=entry.entry_id,
            identity_id=self._fit("identity_id", entry.identity_id),
            action=self._fit("action", entry.action),
            resource_type=self._fit("resource_type", entry.resource_type),
            resource_id=self._fit("resource_id", entry.resource_id),
            payload=entry.payload,
            allowed=entry.allowed,
            reason=entry.reason.value,
            detail=self._fit("detail", entry.detail),
            role=self._fit("role", entry.role),
            trace_id=self._fit("trace_id", entry.trace_id),
            created_at=entry.created_at,
        )
        with self._sessions.session() as session:
            session.execute(stmt)

    def count_recent(
        self, identity_id: str, action: AccessAction, window_seconds: int
    ) -> int:
        cutoff = self._clock() - timedelta(seconds=window_seconds)
        stmt = select(func.count()).select_from(self._table).where(
            self._table.c.identity_id == self._fit("identity_id", identity_id),
            self._table.c.action == action.value,
            self._table.c.created_at >= cutoff,
        )
        with self._sessions.session() as session:
            return int(session.execute(stmt).scalar_one())

    def is_healthy(self) -> bool:
        return self._runtime.is_healthy()

    def _fit(self, column: str, value: str | None) -> str | None:
        """Truncate to the column's declared width so oversized input still audits."""
        length = getattr(self._table.c[column].type, "length", None)
        if value is None or length is None:
            return value
        return value[:length]
