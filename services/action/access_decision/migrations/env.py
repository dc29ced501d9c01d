"""Alembic environment for Access Decision Service migrations."""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from packages.fieldguard_shared.config import load_settings
from resources.substrates.postgres.config import resolve_postgres_settings
from services.action.access_decision.config import resolve_access_decision_settings
from services.action.access_decision.data.runtime import access_tables

VERSION_TABLE = "access_decision_alembic_version"

config = context.config

if config.config_file_name is not None and config.attributes.get(
    "configure_logger", True
):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

settings = config.attributes.get("fieldguard_settings") or load_settings(
    config_path=os.getenv("FIELDGUARD_CONFIG_FILE") or None
)
config.attributes["fieldguard_settings"] = settings
access_settings = resolve_access_decision_settings(settings)
target_metadata = access_tables(access_settings).metadata
schema_name = access_settings.backend_schema

config.set_main_option(
    "sqlalchemy.url",
    resolve_postgres_settings(settings).dsn.replace("%", "%%"),
)


def run_migrations_offline() -> None:
    """Run migrations without a live DB connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        version_table=VERSION_TABLE,
        version_table_schema=schema_name,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations using a live DB connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_schemas=True,
            version_table=VERSION_TABLE,
            version_table_schema=schema_name,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
