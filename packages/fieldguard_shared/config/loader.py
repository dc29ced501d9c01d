"""Layered configuration loading for Fieldguard processes.

Sources are applied lowest-precedence first, each later layer overriding
keys from the ones before it:

1. Model defaults (applied by ``FieldguardSettings`` itself)
2. YAML file, ``~/.config/fieldguard/fieldguard.yaml`` unless overridden
3. ``FIELDGUARD_`` environment variables, ``__`` separating nested keys
4. CLI parameters

``FIELDGUARD_COMPONENTS__SERVICE__ACCESS_DECISION__RATE_LIMIT_MAX=5`` maps to
``components.service.access_decision.rate_limit_max = 5``.
"""

from __future__ import annotations

import copy
import os
from functools import reduce
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import DEFAULT_CONFIG_PATH, FieldguardSettings

_ENV_SCALAR_TYPES = (bool, int, float, list, dict, type(None))


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
    env_prefix: str = "FIELDGUARD_",
) -> FieldguardSettings:
    """Return validated settings built from every configured source."""
    layered = load_config(
        cli_params=cli_params,
        environ=environ,
        config_path=config_path,
        env_prefix=env_prefix,
    )
    return FieldguardSettings.model_validate(layered)


def load_config(
    *,
    cli_params: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_path: str | Path | None = None,
    env_prefix: str = "FIELDGUARD_",
) -> dict[str, Any]:
    layers = (
        _read_yaml_layer(Path(config_path or DEFAULT_CONFIG_PATH)),
        _read_env_layer(os.environ if environ is None else environ, env_prefix),
        dict(cli_params or {}),
    )
    return reduce(_overlay, layers, {})


def _read_yaml_layer(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    document = yaml.safe_load(path.read_text(encoding="utf-8"))
    if document is None:
        return {}
    if isinstance(document, dict):
        return document
    raise ValueError(f"Config file must contain a top-level mapping: {path}")


def _read_env_layer(environ: Mapping[str, str], prefix: str) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for name in sorted(environ):
        if not name.startswith(prefix):
            continue
        keys = [part.lower() for part in name[len(prefix) :].split("__") if part]
        if not keys:
            continue
        parent = layer
        for key in keys[:-1]:
            if not isinstance(parent.get(key), dict):
                parent[key] = {}
            parent = parent[key]
        parent[keys[-1]] = _parse_env_value(environ[name])
    return layer


def _parse_env_value(raw: str) -> Any:
    """Read an env string as a YAML scalar or flow collection.

    Anything YAML would turn into a date, timestamp, or other exotic type
    stays as the original string.
    """
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    return parsed if isinstance(parsed, _ENV_SCALAR_TYPES) else raw


def _overlay(lower: Mapping[str, Any], upper: Mapping[str, Any]) -> dict[str, Any]:
    combined = {str(key): copy.deepcopy(value) for key, value in lower.items()}
    for key, value in upper.items():
        below = combined.get(str(key))
        if isinstance(below, Mapping) and isinstance(value, Mapping):
            combined[str(key)] = _overlay(below, value)
        elif isinstance(value, Mapping):
            combined[str(key)] = _overlay({}, value)
        else:
            combined[str(key)] = copy.deepcopy(value)
    return combined
