"""Loading of demo settings from YAML, ``.env`` and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "demo.yaml"


class SettingsError(ValueError):
    """Raised when the settings file can not be used."""


@dataclass(frozen=True)
class Settings:
    database: str = "Person"
    collection: str = "test"
    person_name: str = "Paul"
    phone_number: str = "123-123"
    updated_number: str = "111-222"
    mongo_url: Optional[str] = None
    mongod_binary: Optional[str] = None
    drop_collection: bool = True


_ENV_OVERRIDES = {
    "database": ("CONTACTMAP_DATABASE",),
    "collection": ("CONTACTMAP_COLLECTION",),
    "mongo_url": ("MONGO_URL", "MONGO_URI"),
    "mongod_binary": ("MONGOD_BINARY",),
}
_BOOL_SETTINGS = {"drop_collection"}
_OPTIONAL_SETTINGS = {"mongo_url", "mongod_binary"}


def read_settings_file(config_path: str | Path) -> Dict[str, Any]:
    """Return the mapping stored in ``config_path``; a missing file yields ``{}``."""
    path = Path(config_path)
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError(f"{path} must contain a mapping of settings.")
    known = {field.name for field in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise SettingsError(f"Unknown settings in {path}: {', '.join(unknown)}")
    for name, value in data.items():
        _check_value(path, name, value)
    return data


def _check_value(path: Path, name: str, value: Any) -> None:
    if name in _BOOL_SETTINGS:
        if not isinstance(value, bool):
            raise SettingsError(f"{path}: '{name}' must be true or false, got {value!r}.")
        return
    if value is None and name in _OPTIONAL_SETTINGS:
        return
    if not isinstance(value, str) or not value:
        raise SettingsError(f"{path}: '{name}' must be a non-empty string, got {value!r}.")


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    environ = os.environ if environ is None else environ
    overrides: Dict[str, str] = {}
    for name, variables in _ENV_OVERRIDES.items():
        for variable in variables:
            value = environ.get(variable)
            if value:
                overrides[name] = value
                break
    return overrides


def load_settings(
    config_path: str | Path | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Defaults, then the YAML file, then environment variables."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if config_path and not path.exists():
        raise SettingsError(f"Settings file not found at {config_path}")
    settings = replace(Settings(), **read_settings_file(path))
    return replace(settings, **env_overrides(environ))


__all__ = ["DEFAULT_CONFIG_PATH", "Settings", "SettingsError", "env_overrides", "load_settings", "read_settings_file"]
