"""Tests for the access decision process entrypoint."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from services.action.access_decision.config import resolve_access_decision_settings
from services.action.access_decision.main import main


def _fake_service_class(built: list[SimpleNamespace]) -> MagicMock:
    def _from_settings(settings):
        service = SimpleNamespace(
            settings=resolve_access_decision_settings(settings),
            runtime=object(),
            close=MagicMock(),
        )
        built.append(service)
        return service

    fake = MagicMock()
    fake.from_settings.side_effect = _from_settings
    return fake


def test_main_applies_cli_overrides_and_serves(tmp_path: Path, monkeypatch) -> None:
    """CLI flags should override settings, run migrations, and start uvicorn."""
    monkeypatch.delenv("FIELDGUARD_CONFIG_FILE", raising=False)
    built: list[SimpleNamespace] = []
    module = "services.action.access_decision.main"

    with (
        patch(f"{module}.DefaultAccessDecisionService", _fake_service_class(built)),
        patch(f"{module}.configure_logging_from_settings"),
        patch(f"{module}.run_startup_migrations") as migrate,
        patch(f"{module}.build_access_http_app", return_value="app") as build_app,
        patch(f"{module}.run_app") as run_app,
    ):
        main(
            [
                "--config",
                str(tmp_path / "missing.yaml"),
                "--host",
                "127.0.0.1",
                "--port",
                "9101",
                "--migrate",
            ]
        )

    service = built[0]
    assert service.settings.http_bind_port == 9101
    assert service.settings.run_migrations_on_startup is True
    assert migrate.call_args.args == (service.runtime,)
    migrated_settings = migrate.call_args.kwargs["settings"]
    assert resolve_access_decision_settings(migrated_settings) == service.settings
    build_app.assert_called_once_with(service=service, settings=service.settings)
    assert run_app.call_args.kwargs["host"] == "127.0.0.1"
    assert run_app.call_args.kwargs["port"] == 9101
    service.close.assert_called_once_with()


def test_main_skips_migrations_and_closes_on_failure(
    tmp_path: Path, monkeypatch
) -> None:
    """Without --migrate no migration runs, and the service closes on errors."""
    monkeypatch.delenv("FIELDGUARD_CONFIG_FILE", raising=False)
    built: list[SimpleNamespace] = []
    module = "services.action.access_decision.main"

    with (
        patch(f"{module}.DefaultAccessDecisionService", _fake_service_class(built)),
        patch(f"{module}.configure_logging_from_settings"),
        patch(f"{module}.run_startup_migrations") as migrate,
        patch(f"{module}.build_access_http_app", return_value="app"),
        patch(f"{module}.run_app", side_effect=OSError("port in use")),
    ):
        with pytest.raises(OSError, match="port in use"):
            main(["--config", str(tmp_path / "missing.yaml")])

    migrate.assert_not_called()
    built[0].close.assert_called_once_with()
