"""Tests for component manifests and the process-local registry."""

from __future__ import annotations

import pytest

from packages.fieldguard_shared.manifest import (
    ComponentId,
    ManifestError,
    ManifestRegistry,
    ModuleRoot,
    ResourceManifest,
    ServiceManifest,
    get_registry,
)
from resources.substrates.postgres.component import RESOURCE_COMPONENT_ID
from services.action.access_decision.component import SERVICE_COMPONENT_ID


def _service(component_id: str = "service_example") -> ServiceManifest:
    return ServiceManifest(
        id=ComponentId(component_id),
        layer=1,
        system="action",
        module_roots=frozenset({ModuleRoot("services.action.example")}),
        public_api_roots=frozenset({ModuleRoot("services.action.example.service")}),
    )


def test_access_decision_service_registers_on_import() -> None:
    """Importing the component module should register the service and its store."""
    registry = get_registry()
    service = registry.get_component(SERVICE_COMPONENT_ID)

    assert isinstance(service, ServiceManifest)
    assert service.schema_name == "service_access_decision"
    assert service.owns_resources == frozenset({RESOURCE_COMPONENT_ID})
    assert RESOURCE_COMPONENT_ID in {item.id for item in registry.list_resources()}


def test_registry_accepts_identical_reregistration_and_rejects_mismatch() -> None:
    registry = ManifestRegistry()
    registry.register_component(_service())
    registry.register_component(_service())

    conflicting = ServiceManifest(
        id=ComponentId("service_example"),
        layer=1,
        system="state",
        module_roots=frozenset({ModuleRoot("services.state.example")}),
        public_api_roots=frozenset({ModuleRoot("services.state.example.service")}),
    )
    with pytest.raises(ManifestError, match="duplicate component id"):
        registry.register_component(conflicting)

    assert [item.id for item in registry.list_services()] == ["service_example"]


def test_invalid_manifest_fields_are_rejected() -> None:
    with pytest.raises(ManifestError, match="invalid component id"):
        _service("Service-Bad")

    with pytest.raises(ManifestError, match="module_roots"):
        ResourceManifest(
            id=ComponentId("substrate_example"),
            layer=0,
            system="state",
            module_roots=frozenset(),
            kind="substrate",
        )


def test_unknown_component_lookup_raises() -> None:
    with pytest.raises(ManifestError, match="not registered"):
        ManifestRegistry().get_component(ComponentId("service_missing"))
