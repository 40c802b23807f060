import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def ar_series():
    rng = np.random.default_rng(0)
    values = np.zeros(40)
    for t in range(1, 40):
        values[t] = 0.6 * values[t - 1] + rng.normal()
    return pd.Series(values + 50.0, index=np.arange(1980, 2020), name="soy")


def test_order_list_cross_product():
    from export_forecaster_src.arima_utils import arima_order_list

    orders = arima_order_list([0, 1], [0], [0, 1, 2])
    assert len(orders) == 6
    assert (1, 0, 2) in orders


def test_optimize_arima_sorted_by_aic(ar_series):
    from export_forecaster_src.arima_utils import optimize_arima

    ranking = optimize_arima(ar_series, [(0, 0, 0), (1, 0, 0), (0, 1, 1)])
    assert list(ranking.columns) == ["(p,d,q)", "AIC", "BIC", "HQIC"]
    assert len(ranking) == 3
    assert ranking["AIC"].is_monotonic_increasing


def test_benchmark_forecast_has_intervals(ar_series):
    from export_forecaster_src.arima_utils import arima_benchmark

    order, fc = arima_benchmark(ar_series, [(0, 0, 0), (1, 0, 0)], steps=11, coverage_levels=[80, 95])

    assert order in [(0, 0, 0), (1, 0, 0)]
    assert list(fc.index) == list(range(2020, 2031))
    assert list(fc.columns) == ["forecast", "lo_80", "hi_80", "lo_95", "hi_95"]
    assert (fc["lo_95"] <= fc["lo_80"]).all()
    assert (fc["hi_80"] <= fc["hi_95"]).all()
