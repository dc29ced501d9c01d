"""Collaborator protocols consumed by the Access Decision Service."""

from __future__ import annotations

from typing import Protocol

from services.action.access_decision.domain import (
    AccessAction,
    AuditEntry,
    DeviceState,
    Identity,
)


class IdentityStore(Protocol):
    """Read-only lookup of identity role and account status."""

    def get_identity(self, identity_id: str) -> Identity | None:
        """Return one identity, or ``None`` when it does not exist."""


class DeviceStateStore(Protocol):
    """Read-only lookup of a monitor's location-reporting session."""

    def get_device_state(self, identity_id: str) -> DeviceState | None:
        """Return current device state, or ``None`` when no record exists."""


class AuditLog(Protocol):
    """Append-only decision log that also backs the rate window."""

    def append(self, entry: AuditEntry) -> None:
        """Persist one audit entry."""

    def count_recent(
        self, identity_id: str, action: AccessAction, window_seconds: int
    ) -> int:
        """Count entries for (identity, action) created within the trailing window."""

    def is_healthy(self) -> bool:
        """Return ``True`` when the backing store is reachable."""
