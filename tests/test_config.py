import types
from pathlib import Path

import pytest

from config import ConfigurationError, ConfigurationManager, get_config


def _write_yaml(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_default_configuration_loads():
    cfg = ConfigurationManager()
    assert cfg.get("grid_search.validation_window") == 5
    assert cfg.get("grid_search.forecast_horizon") == 11
    assert cfg.get("grid_search.scoring") == "rmse"
    assert cfg.get("features.lags") == [1, 2, 3, 4, 5]
    assert cfg.get("grid_search.missing_key", "fallback") == "fallback"
    assert cfg.validate_configuration() == {}


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EXPORT_FORECASTER_GRID_SEARCH__VALIDATION_WINDOW", "4")
    monkeypatch.setenv("EXPORT_FORECASTER_ARIMA__ENABLED", "true")
    monkeypatch.setenv("EXPORT_FORECASTER_FEATURES__LAGS", "[1, 2]")
    cfg = ConfigurationManager()

    assert cfg.get("grid_search.validation_window") == 4
    assert cfg.get("arima.enabled") is True
    assert cfg.get("features.lags") == [1, 2]


def test_invalid_values_are_reported(tmp_path: Path):
    path = _write_yaml(tmp_path / "bad.yaml", "grid_search:\n  scoring: r2\n  validation_window: 0\nfeatures:\n  lags: [0]\n")
    errors = ConfigurationManager(path).validate_configuration()

    assert len(errors["grid_search"]) == 2
    assert "features" in errors


def test_missing_or_broken_file_raises(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        ConfigurationManager(tmp_path / "missing.yaml")
    path = _write_yaml(tmp_path / "broken.yaml", "grid_search: [unclosed\n")
    with pytest.raises(ConfigurationError):
        ConfigurationManager(path)


def test_get_config_is_a_singleton_without_path(tmp_path: Path):
    assert get_config() is get_config()
    path = _write_yaml(tmp_path / "alt.yaml", "grid_search:\n  validation_window: 3\n")
    assert get_config(path).get("grid_search.validation_window") == 3


def test_cli_over_config_over_default(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    from export_forecaster_src import config_utils

    path = _write_yaml(tmp_path / "alt.yaml", "grid_search:\n  n_jobs: 4\n")
    monkeypatch.setattr(config_utils, "config_manager", ConfigurationManager(path))

    args = types.SimpleNamespace(n_jobs=8)
    assert config_utils.get_config_value("grid_search.n_jobs", 1, args, "n_jobs") == 8
    args = types.SimpleNamespace(n_jobs=None)
    assert config_utils.get_config_value("grid_search.n_jobs", 1, args, "n_jobs") == 4
    assert config_utils.get_config_value("grid_search.fit_timeout", 30.0) == 30.0
