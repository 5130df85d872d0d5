from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import ApplicationConfig, BatchConfig, ConnectionConfig, LoaderConfig

"""Config loader.

Responsibilities:
- Load YAML config/bulk_load.yml (plus an optional per-environment overlay)
- Validate against the packaged config_schema.json
- Apply defaults for omitted keys
- Let DATABASE_URL / PGDSN override database.connection_string
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "ENVIRONMENT_VARIABLE",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/bulk_load.yml")
ENVIRONMENT_VARIABLE = "BULK_LOAD_ENV"
CONNECTION_ENV_VARS = ("DATABASE_URL", "PGDSN")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: if the schema file is missing or unreadable, or the data
            violates it (missing sections, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return data


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def environment_overlay_path(path: Path, environment: str | None) -> Path | None:
    """config/bulk_load.yml + "staging" -> config/bulk_load.staging.yml"""
    if not environment:
        return None
    return path.with_name(f"{path.stem}.{environment}{path.suffix}")


def _connection_string(raw: str | None) -> str:
    for name in CONNECTION_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return raw or ""


def load_config(path: Path = DEFAULT_CONFIG_PATH, environment: str | None = None) -> LoaderConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    data = _read_yaml(path)

    if environment is None:
        environment = os.getenv(ENVIRONMENT_VARIABLE)
    overlay = environment_overlay_path(path, environment)
    if overlay is not None and overlay.exists():
        data = _merge(data, _read_yaml(overlay))

    _validate_config_schema(data)

    app_raw = data["application"]
    db_raw = data.get("database") or {}
    bulk_raw = data.get("bulk_load") or {}

    app_defaults = ApplicationConfig()
    application = ApplicationConfig(
        name=app_raw.get("name", app_defaults.name),
        version=str(app_raw.get("version", app_defaults.version)),
        log_directory=app_raw.get("log_directory", app_defaults.log_directory),
        base_path=app_raw.get("base_path", app_defaults.base_path),
        csv_file_path=app_raw["csv_file_path"],
    )

    db_defaults = ConnectionConfig()
    database = ConnectionConfig(
        connection_string=_connection_string(db_raw.get("connection_string")),
        schema=db_raw.get("schema", db_defaults.schema),
        table_name=db_raw.get("table_name", db_defaults.table_name),
        command_timeout=db_raw.get("command_timeout", db_defaults.command_timeout),
        connection_timeout=db_raw.get("connection_timeout", db_defaults.connection_timeout),
    )

    bulk_defaults = BatchConfig()
    bulk_load = BatchConfig(
        batch_size=bulk_raw.get("batch_size", bulk_defaults.batch_size),
        max_retries=bulk_raw.get("max_retries", bulk_defaults.max_retries),
        retry_delay_ms=bulk_raw.get("retry_delay_ms", bulk_defaults.retry_delay_ms),
    )

    return LoaderConfig(application=application, database=database, bulk_load=bulk_load)
