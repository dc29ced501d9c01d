"""Public API for shared fieldguard configuration utilities."""

from .loader import load_config, load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    FieldguardSettings,
    LoggingSettings,
    ObservabilitySettings,
    PublicApiObservabilitySettings,
    PublicApiOtelSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "FieldguardSettings",
    "LoggingSettings",
    "ObservabilitySettings",
    "PublicApiObservabilitySettings",
    "PublicApiOtelSettings",
    "load_config",
    "load_settings",
    "resolve_component_settings",
]
