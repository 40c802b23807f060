"""Configuration management for the export forecaster."""

from .manager import (
    ConfigurationError,
    ConfigurationManager,
    DEFAULT_CONFIG_PATH,
    get_config,
)

__all__ = [
    "ConfigurationError",
    "ConfigurationManager",
    "DEFAULT_CONFIG_PATH",
    "get_config",
]
