"""Startup migration runner for the Access Decision Service audit table."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import text

from packages.fieldguard_shared.config import FieldguardSettings
from packages.fieldguard_shared.logging import get_logger, log_context
from services.action.access_decision.data.runtime import AccessDecisionPostgresRuntime

_LOGGER = get_logger(__name__)

ALEMBIC_CONFIG_PATH = Path(__file__).resolve().parent.parent / "migrations" / "alembic.ini"


class MigrationExecutionError(RuntimeError):
    """Raised when startup migration execution fails."""


def run_startup_migrations(
    runtime: AccessDecisionPostgresRuntime,
    *,
    settings: FieldguardSettings | None = None,
    config_path: Path = ALEMBIC_CONFIG_PATH,
    upgrade_fn: Callable[[Config, str], None] = command.upgrade,
) -> None:
    """Ensure the backend schema exists, then upgrade the audit table to head.

    When ``settings`` is given, the Alembic environment reuses it instead of
    reloading configuration, and leaves process logging untouched.
    """
    schema = runtime.schema_sessions.schema
    with runtime.engine.begin() as connection:
        connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))

    try:
        upgrade_fn(_alembic_config(config_path, settings), "head")
    except Exception as exc:
        raise MigrationExecutionError(
            f"startup migration failed for config '{config_path}'"
        ) from exc
    with log_context({"schema": schema}):
        _LOGGER.info("Access decision migrations applied")


def _alembic_config(config_path: Path, settings: FieldguardSettings | None) -> Config:
    config = Config(str(config_path))
    if settings is not None:
        config.attributes["fieldguard_settings"] = settings
        config.attributes["configure_logger"] = False
    return config
