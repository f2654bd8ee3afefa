# === NAVMAP v1 ===
# {
#   "module": "GemVault.config.loader",
#   "purpose": "Configuration loading with file/env/CLI precedence.",
#   "sections": [
#     {"id": "read-file", "name": "_read_file", "anchor": "function-read-file", "kind": "function"},
#     {"id": "merge-env-overrides", "name": "_merge_env_overrides", "anchor": "function-merge-env-overrides", "kind": "function"},
#     {"id": "load-config", "name": "load_config", "anchor": "function-load-config", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Configuration Loading with File/Env/CLI Precedence

1. **File level** (YAML/JSON) — base configuration
2. **Environment level** — GEMVAULT_* prefixed variables override file
3. **CLI level** — programmatic overrides win

Environment variables use double-underscore notation:
  GEMVAULT_OBJECT_STORE__BUCKET=gems  →  object_store.bucket="gems"
  GEMVAULT_LOCK__TIMEOUT_S=30         →  lock.timeout_s=30
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .models import GemVaultConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "GEMVAULT_"


def _read_file(path: str) -> dict[str, Any]:
    """
    Read YAML or JSON config file.

    Raises:
        ValueError: If file cannot be read or parsed
    """
    p = Path(path)
    if not p.exists():
        raise ValueError(f"Config file not found: {path}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e

    suffix = p.suffix.lower()
    if suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    elif suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Use .yaml or .json")

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return data


def _assign_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    keys = dotted_key.split(".")
    current = data
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def _coerce_env_value(value: str) -> Any:
    """Parse JSON scalars/lists where possible, otherwise keep the raw string."""
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _merge_env_overrides(data: dict[str, Any], env_prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    for env_key, env_value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue
        dotted_key = env_key[len(env_prefix) :].lower().replace("__", ".")
        coerced_value = _coerce_env_value(env_value)
        _assign_nested(data, dotted_key, coerced_value)
        # Values may be credentials; log keys only.
        _LOGGER.debug(f"Environment override: {env_key} → {dotted_key}")
    return data


def _merge_cli_overrides(
    data: dict[str, Any], cli_overrides: Mapping[str, Any] | None
) -> dict[str, Any]:
    if not cli_overrides:
        return data
    for key, value in cli_overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key] = _merge_cli_overrides(data[key], value)
        else:
            data[key] = dict(value) if isinstance(value, Mapping) else value
    return data


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
) -> GemVaultConfig:
    """
    Load GemVaultConfig from file, environment, and CLI with proper precedence.

    **Precedence:** file < environment < CLI

    Raises:
        ValueError: If config is invalid or file cannot be read
    """
    data: dict[str, Any] = {}

    if path:
        data = _read_file(path)
        _LOGGER.info(f"Loaded config from {path}")

    data = _merge_env_overrides(data, env_prefix)
    data = _merge_cli_overrides(data, cli_overrides)

    try:
        config = GemVaultConfig.model_validate(data)
    except ValueError as e:
        _LOGGER.error(f"Configuration validation failed: {e}")
        raise
    _LOGGER.debug(f"Configuration validated. Config hash: {config.config_hash()[:8]}...")
    return config


def validate_config_file(path: str) -> bool:
    """Validate a config file, raising ``ValueError`` if it is invalid."""
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    """Export JSON Schema for GemVaultConfig."""
    return GemVaultConfig.model_json_schema()
