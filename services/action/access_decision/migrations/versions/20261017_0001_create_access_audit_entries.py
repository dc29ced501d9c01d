"""create access audit entries table"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op
from sqlalchemy.dialects import postgresql

from services.action.access_decision.config import resolve_access_decision_settings

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _target() -> tuple[str, str]:
    """Resolve configured (schema, audit table) names."""
    settings = resolve_access_decision_settings(
        context.config.attributes["fieldguard_settings"]
    )
    return settings.backend_schema, settings.audit_table


def upgrade() -> None:
    """Create the audit table and its rate-window index."""
    schema, table = _target()

    op.create_table(
        table,
        sa.Column("id", sa.String(length=26), primary_key=True, nullable=False),
        sa.Column("identity_id", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("resource_type", sa.String(length=64), nullable=False),
        sa.Column("resource_id", sa.String(length=128), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
        sa.Column("allowed", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("detail", sa.String(length=64), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=True),
        sa.Column("trace_id", sa.String(length=64), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        schema=schema,
    )
    op.create_index(
        f"ix_{table}_identity_action_created",
        table,
        ["identity_id", "action", "created_at"],
        unique=False,
        schema=schema,
    )


def downgrade() -> None:
    """Drop the audit table and its index."""
    schema, table = _target()
    op.drop_index(f"ix_{table}_identity_action_created", table_name=table, schema=schema)
    op.drop_table(table, schema=schema)
