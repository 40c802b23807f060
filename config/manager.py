"""YAML configuration manager for the export forecaster.

Loads ``config/forecaster.yaml`` (or an explicit path), applies environment
overrides and exposes dot-path access to nested keys.

Environment overrides use the ``EXPORT_FORECASTER_`` prefix with double
underscores separating levels, e.g.
``EXPORT_FORECASTER_GRID_SEARCH__VALIDATION_WINDOW=4``.
"""

import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "forecaster.yaml"
ENV_PREFIX = "EXPORT_FORECASTER_"


class ConfigurationError(Exception):
    """Raised when the configuration file cannot be loaded."""


class ConfigurationManager:
    """Configuration loader with dot-path access and validation."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        logger.info("Loading configuration from: %s", self.config_path)
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            path = [part.lower() for part in key[len(ENV_PREFIX):].split("__") if part]
            if not path:
                continue
            self._set_nested_value(path, value)
            logger.debug("Applied env override: %s = %s", key, value)

    def _set_nested_value(self, path: List[str], value: str) -> None:
        current = self._config
        for key in path[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = self._convert_value(value)

    @staticmethod
    def _convert_value(value: str) -> Any:
        """Convert an environment string to bool, None, number or YAML list."""
        lowered = value.strip().lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False
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
        if value.strip().startswith("["):
            try:
                return yaml.safe_load(value)
            except yaml.YAMLError:
                return value
        return value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-separated path.

        Parameters
        ----------
        key_path : str
            Dot-separated path, e.g. ``'grid_search.validation_window'``
        default : Any
            Value returned when the key is missing

        Returns
        -------
        Any
            Configuration value or ``default``
        """
        current: Any = self._config
        try:
            for key in key_path.split("."):
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self._config)

    def get_grid_search_config(self) -> Dict[str, Any]:
        return deepcopy(self._config.get("grid_search", {}))

    def get_arima_search_space(self) -> Dict[str, Any]:
        return deepcopy(self.get("arima.search_space", {}) or {})

    def validate_configuration(self) -> Dict[str, List[str]]:
        """
        Check value ranges of the known sections.

        Returns
        -------
        Dict[str, List[str]]
            Mapping of section name to a list of problems; empty when valid
        """
        errors: Dict[str, List[str]] = {}

        grid = self._config.get("grid_search", {}) or {}
        grid_errors: List[str] = []
        window = grid.get("validation_window")
        if window is not None and (not isinstance(window, int) or window <= 0):
            grid_errors.append(f"validation_window must be a positive integer, got {window!r}")
        horizon = grid.get("forecast_horizon")
        if horizon is not None and (not isinstance(horizon, int) or horizon <= 0):
            grid_errors.append(f"forecast_horizon must be a positive integer, got {horizon!r}")
        scoring = grid.get("scoring")
        if scoring is not None and scoring not in ("rmse", "mean_residual"):
            grid_errors.append(f"scoring must be 'rmse' or 'mean_residual', got {scoring!r}")
        alphas = (grid.get("alphas") or {}).get("n")
        if alphas is not None and (not isinstance(alphas, int) or alphas < 1):
            grid_errors.append(f"alphas.n must be >= 1, got {alphas!r}")
        lambdas = (grid.get("lambdas") or {}).get("n")
        if lambdas is not None and (not isinstance(lambdas, int) or lambdas < 1):
            grid_errors.append(f"lambdas.n must be >= 1, got {lambdas!r}")
        if grid_errors:
            errors["grid_search"] = grid_errors

        lags = (self._config.get("features", {}) or {}).get("lags")
        if lags is not None:
            if not isinstance(lags, list) or not all(isinstance(k, int) and k > 0 for k in lags):
                errors["features"] = [f"lags must be a list of positive integers, got {lags!r}"]

        return errors


_config_instance: Optional[ConfigurationManager] = None


def get_config(config_path: Optional[Union[str, Path]] = None) -> ConfigurationManager:
    """Return the process-wide configuration manager, loading it on first use."""
    global _config_instance
    if config_path is not None:
        return ConfigurationManager(config_path)
    if _config_instance is None:
        _config_instance = ConfigurationManager()
    return _config_instance
