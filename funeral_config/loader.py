"""
Configuration Loader (``funeral_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into the frozen ``AppConfig``
dataclass tree from ``schema.py``.  Sections missing from the file keep
their defaults; keys not known to a section are rejected.

Failure modes
-------------
* Missing file -> ``ConfigError``.
* Malformed YAML or a non-mapping document -> ``ConfigError``.
* Bad values -> ``ConfigError`` wrapping the schema's ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from funeral_config.schema import (
    DEFAULT_GL_ACCOUNTS,
    AppConfig,
    BusinessSettings,
    DatabaseSettings,
    EmailSettings,
    GoBackendSettings,
    LoggingSettings,
)

_SECTIONS = {
    "database": DatabaseSettings,
    "go_backend": GoBackendSettings,
    "email": EmailSettings,
    "logging": LoggingSettings,
    "business": BusinessSettings,
}


class ConfigError(Exception):
    """Settings file missing, unreadable or invalid."""


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigError: if the file is missing, is not valid YAML, or its
            top level is not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _parse_section(name: str, cls: type, data: Any) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section {name!r} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in {name!r}: {sorted(unknown)}")
    return cls(**data)


def parse_config(data: dict[str, Any]) -> AppConfig:
    """Build an ``AppConfig`` from an already-loaded mapping."""
    unknown = set(data) - set(_SECTIONS) - {"environment", "gl_accounts"}
    if unknown:
        raise ConfigError(f"Unknown top-level keys: {sorted(unknown)}")
    try:
        sections = {
            name: _parse_section(name, cls, data.get(name))
            for name, cls in _SECTIONS.items()
        }
        gl_accounts = dict(DEFAULT_GL_ACCOUNTS)
        gl_accounts.update({k: str(v) for k, v in (data.get("gl_accounts") or {}).items()})
        return AppConfig(
            environment=data.get("environment", "development"),
            gl_accounts=gl_accounts,
            **sections,
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: Path | str) -> AppConfig:
    return parse_config(load_yaml_file(Path(path)))
