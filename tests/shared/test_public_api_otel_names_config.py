"""Unit tests for configured OTel naming in public API instrumentation."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from packages.fieldguard_shared.config import FieldguardSettings, PublicApiOtelSettings
from packages.fieldguard_shared.logging import configure_public_api_otel
from packages.fieldguard_shared.logging import public_api as public_api_module


@pytest.fixture(autouse=True)
def _reset_otel_names() -> Iterator[None]:
    yield
    configure_public_api_otel(PublicApiOtelSettings())


def test_public_api_otel_names_use_defaults_when_not_configured() -> None:
    """Default OTel names should resolve when observability config is absent."""
    names = public_api_module._otel_names()
    assert names.meter_name == "fieldguard.public_api"
    assert names.tracer_name == "fieldguard.public_api"
    assert names.metric_public_api_calls_total == "fieldguard_public_api_calls_total"


def test_public_api_otel_names_accept_config_overrides() -> None:
    """Configured OTel names should override built-in defaults."""
    settings = FieldguardSettings.model_validate(
        {
            "observability": {
                "public_api": {
                    "otel": {
                        "meter_name": "custom.meter",
                        "tracer_name": "custom.tracer",
                        "metric_public_api_calls_total": "custom_calls_total",
                    }
                }
            }
        }
    )

    configure_public_api_otel(settings.observability.public_api.otel)

    names = public_api_module._otel_names()
    assert names.meter_name == "custom.meter"
    assert names.tracer_name == "custom.tracer"
    assert names.metric_public_api_calls_total == "custom_calls_total"
    assert names.metric_public_api_errors_total == "fieldguard_public_api_errors_total"
