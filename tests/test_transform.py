import numpy as np
import pandas as pd
import pytest

from export_forecaster_src.grid_search import IncompleteDataError, InsufficientDataError
from export_forecaster_src.transform_utils import (
    build_lagged_covariates,
    split_all_products,
    split_for_product,
)


def _covariates(start=1990, end=2035):
    years = np.arange(start, end + 1)
    return pd.DataFrame({"gdp": np.linspace(1.0, 2.0, len(years)), "fx": np.arange(len(years), dtype=float)},
                        index=pd.Index(years, name="year"))


def test_lagged_covariates_drop_rows_without_history():
    t = pd.DataFrame({"x": np.arange(10, dtype=float)}, index=np.arange(2000, 2010))
    out = build_lagged_covariates(t, lags=[2, 1])

    assert list(out.columns) == ["x", "x_lag1", "x_lag2"]
    assert out.index[0] == 2002
    assert len(out) == 8
    assert out.loc[2005, "x_lag2"] == t.loc[2003, "x"]
    assert out.loc[2005, "x_lag1"] == t.loc[2004, "x"]


def test_default_lags_cover_one_to_five_years():
    out = build_lagged_covariates(_covariates(2000, 2020))
    assert out.shape == (16, 12)
    assert out.index[0] == 2005
    assert "fx_lag5" in out.columns


def test_lagged_covariates_reject_bad_inputs():
    t = pd.DataFrame({"x": [1.0, 2.0, 3.0]}, index=[2000, 2001, 2003])
    with pytest.raises(ValueError):
        build_lagged_covariates(t, lags=[1])
    with pytest.raises(ValueError):
        build_lagged_covariates(_covariates(), lags=[0, 1])


def test_split_partitions_periods():
    years = np.arange(2000, 2015)
    y = pd.Series(np.arange(15, dtype=float), index=years, name="soy")
    split = split_for_product(y, _covariates(), validation_window=5, forecast_horizon=11)

    assert split.product == "soy"
    assert split.training_periods == list(range(2000, 2010))
    assert split.validation_periods == list(range(2010, 2015))
    assert split.forecast_periods == list(range(2015, 2026))
    assert len(split.X_forecast) == 11
    assert split.X_train.index.equals(y.index)


def test_split_missing_training_covariates():
    y = pd.Series(np.ones(10), index=np.arange(1985, 1995), name="soy")
    with pytest.raises(IncompleteDataError):
        split_for_product(y, _covariates(), 5, 11)


def test_split_short_forecast_coverage():
    y = pd.Series(np.ones(10), index=np.arange(2020, 2030), name="soy")
    with pytest.raises(InsufficientDataError):
        split_for_product(y, _covariates(), 5, 11)


def test_split_all_products_order():
    years = np.arange(2000, 2015)
    series = {
        "soy": pd.Series(np.ones(15), index=years, name="soy"),
        "beef": pd.Series(np.zeros(15), index=years, name="beef"),
    }
    splits = split_all_products(series, _covariates(), 5, 11, products=["beef", "soy"])
    assert list(splits) == ["beef", "soy"]
