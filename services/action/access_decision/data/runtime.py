"""Access Decision Service Postgres runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from packages.fieldguard_shared.config import FieldguardSettings
from resources.substrates.postgres import (
    ServiceSchemaSessionProvider,
    create_postgres_engine,
    create_session_factory,
    ping,
    resolve_postgres_settings,
)
from services.action.access_decision.config import (
    AccessDecisionSettings,
    resolve_access_decision_settings,
)
from services.action.access_decision.data.schema import (
    AccessTables,
    build_access_tables,
)


@dataclass(frozen=True)
class AccessDecisionPostgresRuntime:
    """Concrete handle for schema-scoped, statement-bounded Postgres access."""

    engine: Engine
    session_factory: sessionmaker[Session]
    schema_sessions: ServiceSchemaSessionProvider
    tables: AccessTables
    health_timeout_seconds: float

    @classmethod
    def from_settings(
        cls,
        settings: FieldguardSettings,
        *,
        access_settings: AccessDecisionSettings | None = None,
    ) -> "AccessDecisionPostgresRuntime":
        """Build DB runtime from typed application settings."""
        postgres_settings = resolve_postgres_settings(settings)
        access = access_settings or resolve_access_decision_settings(settings)
        engine = create_postgres_engine(postgres_settings)
        session_factory = create_session_factory(engine)
        return cls(
            engine=engine,
            session_factory=session_factory,
            schema_sessions=ServiceSchemaSessionProvider(
                session_factory=session_factory,
                schema=access.backend_schema,
                statement_timeout_seconds=postgres_settings.statement_timeout_seconds,
            ),
            tables=access_tables(access),
            health_timeout_seconds=postgres_settings.health_timeout_seconds,
        )

    def is_healthy(self) -> bool:
        """Return ``True`` when backing Postgres connection is reachable."""
        return ping(self.engine, timeout_seconds=self.health_timeout_seconds)

    def dispose(self) -> None:
        self.engine.dispose()


def access_tables(settings: AccessDecisionSettings) -> AccessTables:
    """Build table models for the configured schema and table names."""
    return build_access_tables(
        schema=settings.backend_schema,
        identity_table=settings.identity_table,
        device_table=settings.device_table,
        audit_table=settings.audit_table,
    )
