"""
Configuration for a concept-sync deployment.

Settings come from three layers, later layers winning:

1. Defaults on the Settings model
2. A YAML file (explicit path, or CONCEPT_SYNC_CONFIG)
3. Environment variables (CONCEPT_SYNC_DB, CONCEPT_SYNC_PORT, ...)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

from .kernel.engine import DEFAULT_MAX_DEPTH, DEFAULT_MAX_STEPS

CONFIG_ENV = "CONCEPT_SYNC_CONFIG"

# Settings field -> environment variable
ENV_VARS: Dict[str, str] = {
    "db_path": "CONCEPT_SYNC_DB",
    "base_url": "CONCEPT_SYNC_BASE_URL",
    "host": "CONCEPT_SYNC_HOST",
    "port": "CONCEPT_SYNC_PORT",
    "request_timeout": "CONCEPT_SYNC_TIMEOUT",
    "max_steps": "CONCEPT_SYNC_MAX_STEPS",
    "max_depth": "CONCEPT_SYNC_MAX_DEPTH",
    "log_level": "CONCEPT_SYNC_LOG_LEVEL",
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigError(ValueError):
    """The configuration file could not be read."""


class Settings(BaseModel):
    """Runtime settings for the store, the engine and the HTTP server."""

    db_path: str = "concept-sync.db"
    base_url: str = "/api"
    host: str = "127.0.0.1"
    port: int = Field(default=10000, gt=0, lt=65536)
    request_timeout: float = Field(default=10.0, gt=0)
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, gt=0)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, gt=0)
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Optional[str] = None, **overrides: Any) -> "Settings":
        """Build settings from defaults, a YAML file, the environment and overrides."""
        values: Dict[str, Any] = {}

        config_path = path or os.environ.get(CONFIG_ENV)
        if config_path:
            values.update(_read_yaml(config_path))

        for name, env_var in ENV_VARS.items():
            if env_var in os.environ:
                values[name] = os.environ[env_var]

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)


def _read_yaml(path: str) -> Dict[str, Any]:
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(config_file.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
