"""
Configuration loader with YAML file support and environment variable overrides.

Values are resolved in three layers, later layers winning:
1. Defaults declared in settings.py
2. A YAML configuration file
3. Environment variables

Environment variables use the pattern: ATOMIC_GRAPH__{SECTION}__{KEY}
Example: ATOMIC_GRAPH__TRAVERSAL__DEFAULT_DEPTH=3
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from atomic_graph.config.settings import Settings
from atomic_graph.core.exceptions import ConfigurationError

DEFAULT_ENV_PREFIX = "ATOMIC_GRAPH"

_settings_instance: Settings | None = None


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base, descending into nested mappings."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _parse_env_value(value: str) -> Any:
    """
    Convert an environment variable string into a Python value.

    Integers and floats are tried before booleans so that numeric
    settings such as a depth of 1 are not read as True.
    """
    lowered = value.strip().lower()

    if lowered in ("none", "null", ""):
        return None

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False

    return value


def _load_env_overrides(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Collect configuration overrides from environment variables.

    Args:
        prefix: Environment variable prefix to look for

    Returns:
        Nested dictionary of overrides, e.g. {"graph": {"default_max_hops": 3}}
    """
    overrides: dict[str, Any] = {}
    prefix_with_sep = f"{prefix}__"

    for key, value in os.environ.items():
        if not key.startswith(prefix_with_sep):
            continue

        key_path = key[len(prefix_with_sep):].lower().split("__")
        if len(key_path) < 2:
            continue

        current = overrides
        for part in key_path[:-1]:
            current = current.setdefault(part, {})

        current[key_path[-1]] = _parse_env_value(value)

    return overrides


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in configuration file: {e}",
            details={"path": str(path)},
        ) from e

    if content is None:
        return {}

    if not isinstance(content, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got: {type(content).__name__}",
            details={"path": str(path)},
        )

    return content


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> Settings:
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults only.
        env_prefix: Prefix for environment variables

    Returns:
        Validated Settings instance

    Raises:
        FileNotFoundError: If config_path is specified but doesn't exist
        ConfigurationError: If the file or the merged values are invalid
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_data = _deep_merge(config_data, _load_yaml_file(Path(config_path)))

    config_data = _deep_merge(config_data, _load_env_overrides(env_prefix))

    try:
        return Settings(**config_data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} validation error(s)",
            details={"errors": [err["loc"] for err in e.errors()]},
        ) from e


def get_settings(
    config_path: Path | str | None = None,
    reload: bool = False,
) -> Settings:
    """
    Get the process-wide Settings instance, loading it on first use.

    Args:
        config_path: YAML file used on first load or reload
        reload: Force configuration to be read again
    """
    global _settings_instance

    if _settings_instance is None or reload:
        _settings_instance = load_config(config_path)

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings instance."""
    global _settings_instance
    _settings_instance = None


def get_default_config_path() -> Path | None:
    """
    Find a configuration file in the usual places.

    Searched in order: ./config.yaml, ./config/config.yaml,
    ~/.atomic_graph/config.yaml.
    """
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config" / "config.yaml",
        Path.home() / ".atomic_graph" / "config.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None
