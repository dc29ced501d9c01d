"""Component declaration for the Access Decision Service."""

from __future__ import annotations

from packages.fieldguard_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)
from resources.substrates.postgres.component import RESOURCE_COMPONENT_ID

SERVICE_COMPONENT_ID = ComponentId("service_access_decision")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        module_roots=frozenset({ModuleRoot("services.action.access_decision")}),
        public_api_roots=frozenset(
            {
                ModuleRoot("services.action.access_decision.service"),
                ModuleRoot("services.action.access_decision.domain"),
            }
        ),
        owns_resources=frozenset({RESOURCE_COMPONENT_ID}),
    )
)
