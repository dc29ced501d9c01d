"""Table models for identity, device-state, and audit access."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB


@dataclass(frozen=True)
class AccessTables:
    """Bound table handles for one configured schema and table-name set."""

    metadata: MetaData
    identities: Table
    devices: Table
    audit_entries: Table


def build_access_tables(
    *,
    schema: str = "public",
    identity_table: str = "users",
    device_table: str = "monitors",
    audit_table: str = "access_audit_entries",
) -> AccessTables:
    """Build table models; identity and device tables are read-only views."""
    metadata = MetaData(schema=schema)

    identities = Table(
        identity_table,
        metadata,
        Column("user_id", String, primary_key=True),
        Column("role", String, nullable=False),
        Column("status", String, nullable=False),
    )

    devices = Table(
        device_table,
        metadata,
        Column("user_id", String, primary_key=True),
        Column("gps_status", String, nullable=False),
    )

    audit_entries = Table(
        audit_table,
        metadata,
        Column("id", String(26), primary_key=True),
        Column("identity_id", String(128), nullable=False),
        Column("action", String(16), nullable=False),
        Column("resource_type", String(64), nullable=False),
        Column("resource_id", String(128), nullable=True),
        Column("payload", JSONB, nullable=True),
        Column("allowed", Boolean, nullable=False),
        Column("reason", String(32), nullable=False),
        Column("detail", String(64), nullable=True),
        Column("role", String(32), nullable=True),
        Column("trace_id", String(64), nullable=False, server_default=""),
        Column(
            "created_at",
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
        ),
        Index(
            f"ix_{audit_table}_identity_action_created",
            "identity_id",
            "action",
            "created_at",
        ),
    )

    return AccessTables(
        metadata=metadata,
        identities=identities,
        devices=devices,
        audit_entries=audit_entries,
    )


DEFAULT_TABLES = build_access_tables()
metadata = DEFAULT_TABLES.metadata
