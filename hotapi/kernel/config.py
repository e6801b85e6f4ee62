"""Configuration loading, merging, and validation."""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .paths import default_data_dir, load_json, resolve_dir


DEFAULT_CONFIG: dict[str, Any] = {
    "interfaces": {
        "root": "api",
        "extension": ".py",
        "autoload": True,
    },
    "storage": {
        "data_dir": "",
        "log_rotate_max_bytes": 5_000_000,
    },
    "logging": {
        "name": "interfaces",
    },
}

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "HOTAPI_ROOT": ("interfaces", "root"),
    "HOTAPI_DATA_DIR": ("storage", "data_dir"),
    "HOTAPI_EXTENSION": ("interfaces", "extension"),
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    updated = deepcopy(config)
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        raw = str(os.environ.get(env_name) or "").strip()
        if raw:
            updated.setdefault(section, {})[key] = raw
    return updated


def _expect(section: dict[str, Any], key: str, kind: type | tuple[type, ...], path: str) -> None:
    value = section.get(key)
    if not isinstance(value, kind) or isinstance(value, bool) and kind is int:
        raise ConfigError(f"{path}.{key}: expected {getattr(kind, '__name__', kind)}, got {type(value).__name__}")


def validate_config(config: dict[str, Any]) -> None:
    for section in ("interfaces", "storage", "logging"):
        if not isinstance(config.get(section), dict):
            raise ConfigError(f"$.{section}: expected object")
    interfaces = config["interfaces"]
    _expect(interfaces, "root", str, "$.interfaces")
    _expect(interfaces, "extension", str, "$.interfaces")
    _expect(interfaces, "autoload", bool, "$.interfaces")
    extension = interfaces["extension"]
    if not extension.startswith(".") or len(extension) < 2:
        raise ConfigError(f"$.interfaces.extension: invalid extension {extension!r}")
    storage = config["storage"]
    _expect(storage, "data_dir", str, "$.storage")
    _expect(storage, "log_rotate_max_bytes", int, "$.storage")
    _expect(config["logging"], "name", str, "$.logging")


def normalize_config_paths(config: dict[str, Any], *, base: Path | None = None) -> dict[str, Any]:
    updated = deepcopy(config)
    interfaces = updated["interfaces"]
    interfaces["root"] = str(resolve_dir(interfaces["root"], base=base))
    storage = updated["storage"]
    data_dir = storage.get("data_dir") or str(default_data_dir())
    storage["data_dir"] = str(resolve_dir(data_dir, base=base))
    return updated


def load_config(path: str | Path | None = None, *, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build the effective config: defaults, user file, overrides, then env."""
    config = deepcopy(DEFAULT_CONFIG)
    base: Path | None = None
    if path is not None:
        config_path = Path(path)
        try:
            user_config = load_json(config_path)
        except FileNotFoundError:
            raise ConfigError(f"Missing config file: {config_path}")
        except ValueError as exc:
            raise ConfigError(f"Invalid config file {config_path}: {exc}")
        config = deep_merge(config, user_config)
        base = config_path.absolute().parent
    if isinstance(overrides, dict):
        config = deep_merge(config, overrides)
    config = _apply_env_overrides(config)
    validate_config(config)
    return normalize_config_paths(config, base=base)
