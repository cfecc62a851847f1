"""
funeral_config -- single public entrypoint for application settings.

Responsibility:
    Provides ``get_active_config()``, which resolves the settings file,
    parses it into a frozen ``AppConfig`` and applies the environment
    overrides used by deployments.

Resolution order:
    1. explicit ``path`` argument;
    2. the ``FUNERAL_ERP_CONFIG`` environment variable;
    3. the packaged ``defaults.yaml``.
    ``FUNERAL_ERP_DATABASE_URL`` and ``FUNERAL_ERP_GO_BACKEND_URL`` then
    override ``database.url`` and ``go_backend.base_url``.

Failure modes:
    - ``ConfigError`` -- missing file, malformed YAML or invalid values.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from pathlib import Path

from funeral_config.loader import ConfigError, load_config, parse_config
from funeral_config.schema import (
    DEFAULT_GL_ACCOUNTS,
    AppConfig,
    BusinessSettings,
    DatabaseSettings,
    EmailSettings,
    GoBackendSettings,
    LoggingSettings,
)
from funeral_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "FUNERAL_ERP_CONFIG"
DATABASE_URL_ENV = "FUNERAL_ERP_DATABASE_URL"
GO_BACKEND_URL_ENV = "FUNERAL_ERP_GO_BACKEND_URL"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Resolve, load and override the application settings."""
    env = os.environ if environ is None else environ
    source = Path(path) if path else Path(env.get(CONFIG_PATH_ENV) or DEFAULTS_PATH)
    config = load_config(source)

    try:
        if env.get(DATABASE_URL_ENV):
            config = dataclasses.replace(
                config,
                database=dataclasses.replace(config.database, url=env[DATABASE_URL_ENV]),
            )
        if env.get(GO_BACKEND_URL_ENV):
            config = dataclasses.replace(
                config,
                go_backend=dataclasses.replace(
                    config.go_backend, base_url=env[GO_BACKEND_URL_ENV],
                ),
            )
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    logger.info("config_loaded", extra={
        "source": str(source),
        "environment": config.environment,
        "go_backend_url": config.go_backend.base_url,
    })
    return config


__all__ = [
    "AppConfig",
    "BusinessSettings",
    "ConfigError",
    "DEFAULT_GL_ACCOUNTS",
    "DatabaseSettings",
    "EmailSettings",
    "GoBackendSettings",
    "LoggingSettings",
    "get_active_config",
    "load_config",
    "parse_config",
]
