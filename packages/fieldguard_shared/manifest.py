"""Component manifests and the process-local registry that holds them.

Each service and substrate package registers a manifest when imported. The
registry lets bootstrap code and tests ask which components a process hosts
and which Postgres schema a service owns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from threading import RLock
from typing import FrozenSet, Iterable, Literal, NewType, Optional, TypeVar

ComponentId = NewType("ComponentId", str)
ModuleRoot = NewType("ModuleRoot", str)

_ID_PATTERN = re.compile(r"[a-z][a-z0-9_]{1,62}")
_DOTTED_PATTERN = re.compile(r"[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*")

_M = TypeVar("_M", bound="ComponentManifest")


class ManifestError(ValueError):
    """A manifest is malformed or conflicts with a registered one."""


def _check_id(value: str) -> None:
    if _ID_PATTERN.fullmatch(value) is None:
        raise ManifestError(
            f"invalid component id '{value}'; use 2-63 chars of [a-z0-9_] "
            "starting with a letter"
        )


def _check_roots(label: str, roots: Iterable[str]) -> None:
    roots = tuple(roots)
    if not roots:
        raise ManifestError(f"{label} must not be empty")
    bad = sorted(root for root in roots if _DOTTED_PATTERN.fullmatch(root) is None)
    if bad:
        raise ManifestError(f"{label} has invalid module roots: {', '.join(bad)}")


@dataclass(frozen=True, slots=True)
class ComponentManifest:
    id: ComponentId
    layer: Literal[0, 1]
    system: Literal["state", "action"]
    module_roots: FrozenSet[ModuleRoot]

    def __post_init__(self) -> None:
        _check_id(self.id)
        _check_roots("module_roots", self.module_roots)


@dataclass(frozen=True, slots=True)
class ResourceManifest(ComponentManifest):
    """A layer-0 substrate, optionally owned by a single service."""

    layer: Literal[0]
    kind: Literal["substrate", "adapter"]
    owner_service_id: Optional[ComponentId] = None

    def __post_init__(self) -> None:
        ComponentManifest.__post_init__(self)
        if self.owner_service_id is not None:
            _check_id(self.owner_service_id)


@dataclass(frozen=True, slots=True)
class ServiceManifest(ComponentManifest):
    """A layer-1 service and the modules other code may import from it."""

    layer: Literal[1]
    public_api_roots: FrozenSet[ModuleRoot]
    owns_resources: Optional[FrozenSet[ComponentId]] = None

    def __post_init__(self) -> None:
        ComponentManifest.__post_init__(self)
        _check_roots("public_api_roots", self.public_api_roots)

    @property
    def schema_name(self) -> str:
        """Postgres schema owned by this service; identical to its id."""
        return str(self.id)


@dataclass(slots=True)
class ManifestRegistry:
    _entries: dict[str, ComponentManifest] = field(default_factory=dict)
    _lock: RLock = field(default_factory=RLock)

    def register_component(self, manifest: ComponentManifest) -> None:
        """Add ``manifest``; registering an equal manifest twice is allowed."""
        with self._lock:
            current = self._entries.setdefault(manifest.id, manifest)
            if current != manifest:
                raise ManifestError(
                    f"duplicate component id with mismatched definition: {manifest.id}"
                )

    def get_component(self, component_id: ComponentId) -> ComponentManifest:
        with self._lock:
            found = self._entries.get(component_id)
        if found is None:
            raise ManifestError(f"component not registered: {component_id}")
        return found

    def list_services(self) -> tuple[ServiceManifest, ...]:
        return self._of_type(ServiceManifest)

    def list_resources(self) -> tuple[ResourceManifest, ...]:
        return self._of_type(ResourceManifest)

    def _of_type(self, kind: type[_M]) -> tuple[_M, ...]:
        with self._lock:
            matches = [item for item in self._entries.values() if isinstance(item, kind)]
        return tuple(sorted(matches, key=lambda item: item.id))


_process_registry = ManifestRegistry()


def register_component(manifest: _M) -> _M:
    """Record ``manifest`` in the process registry and hand it back."""
    _process_registry.register_component(manifest)
    return manifest


def get_registry() -> ManifestRegistry:
    return _process_registry
