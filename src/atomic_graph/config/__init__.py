"""
Configuration module for the atomic knowledge graph.

Provides Pydantic-based settings management with YAML file support
and environment variable overrides.
"""

from atomic_graph.config.settings import (
    Settings,
    StorageSettings,
    TraversalSettings,
    GraphSettings,
    DetectionSettings,
    LoggingSettings,
)
from atomic_graph.config.loader import (
    load_config,
    get_settings,
    reset_settings,
    get_default_config_path,
)

__all__ = [
    "Settings",
    "StorageSettings",
    "TraversalSettings",
    "GraphSettings",
    "DetectionSettings",
    "LoggingSettings",
    "load_config",
    "get_settings",
    "reset_settings",
    "get_default_config_path",
]
