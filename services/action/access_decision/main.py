"""Process entrypoint serving the access decision HTTP endpoint."""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from packages.fieldguard_shared.config import load_settings
from packages.fieldguard_shared.http import run_app
from packages.fieldguard_shared.logging import (
    configure_logging_from_settings,
    configure_public_api_otel,
    get_logger,
    log_context,
)
from services.action.access_decision.data.migrate import run_startup_migrations
from services.action.access_decision.http_ingress import build_access_http_app
from services.action.access_decision.implementation import (
    DefaultAccessDecisionService,
)

_LOGGER = get_logger(__name__)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fieldguard-access",
        description="Serve the fieldguard access decision endpoint.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config path; defaults to $FIELDGUARD_CONFIG_FILE.",
    )
    parser.add_argument("--host", default=None, help="Override http_bind_host.")
    parser.add_argument("--port", type=int, default=None, help="Override http_bind_port.")
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="Apply audit-table migrations before serving.",
    )
    return parser.parse_args(argv)


def _cli_params(args: argparse.Namespace) -> dict[str, Any]:
    """Map CLI overrides onto the settings tree."""
    overrides: dict[str, Any] = {}
    if args.host is not None:
        overrides["http_bind_host"] = args.host
    if args.port is not None:
        overrides["http_bind_port"] = args.port
    if args.migrate:
        overrides["run_migrations_on_startup"] = True
    if not overrides:
        return {}
    return {"components": {"service": {"access_decision": overrides}}}


def main(argv: Sequence[str] | None = None) -> None:
    """Load settings, build the Postgres-backed service, and serve HTTP."""
    args = _parse_args(argv)
    env_config_path = os.getenv("FIELDGUARD_CONFIG_FILE", "").strip()
    config_path = args.config or (Path(env_config_path) if env_config_path else None)

    settings = load_settings(cli_params=_cli_params(args), config_path=config_path)
    configure_logging_from_settings(settings.logging)
    configure_public_api_otel(settings.observability.public_api.otel)

    service = DefaultAccessDecisionService.from_settings(settings)
    access_settings = service.settings
    try:
        if access_settings.run_migrations_on_startup and service.runtime is not None:
            run_startup_migrations(service.runtime, settings=settings)

        app = build_access_http_app(service=service, settings=access_settings)
        with log_context(
            {
                "host": access_settings.http_bind_host,
                "port": access_settings.http_bind_port,
                "path": access_settings.http_path,
            }
        ):
            _LOGGER.info("access decision HTTP runtime starting")
        run_app(
            app,
            host=access_settings.http_bind_host,
            port=access_settings.http_bind_port,
            log_level=settings.logging.level.lower(),
        )
    finally:
        service.close()
        _LOGGER.info("access decision HTTP runtime stopped")


if __name__ == "__main__":
    main()
