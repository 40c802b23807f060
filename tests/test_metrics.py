import numpy as np
import pandas as pd
import pytest

from export_forecaster_src.metrics_utils import (
    count_nonzero,
    count_positive,
    get_scorer,
    hash_forecast,
    mae,
    mean_residual_score,
    naive_last_value_score,
    rmse,
)


def test_mean_residual_cancels_opposite_errors():
    y = [1.0, 2.0, 3.0]
    y_hat = [2.0, 1.0, 3.0]
    assert mean_residual_score(y, y_hat) == pytest.approx(0.0)
    assert rmse(y, y_hat) == pytest.approx(np.sqrt(2.0 / 3.0))
    assert mae(y, y_hat) == pytest.approx(2.0 / 3.0)


def test_mean_residual_is_absolute():
    assert mean_residual_score([1.0, 1.0], [3.0, 2.0]) == pytest.approx(1.5)
    assert mean_residual_score([3.0, 2.0], [1.0, 1.0]) == pytest.approx(1.5)


def test_scores_accept_column_vectors_and_series():
    y = pd.Series([1.0, 2.0])
    y_hat = np.array([[1.0], [4.0]])
    assert rmse(y, y_hat) == pytest.approx(np.sqrt(2.0))


def test_length_mismatch_raises():
    with pytest.raises(ValueError):
        rmse([1.0, 2.0], [1.0])


def test_empty_window_is_nan():
    assert np.isnan(rmse([], []))
    assert np.isnan(mean_residual_score([], []))


def test_scorer_registry():
    assert get_scorer("rmse") is rmse
    assert get_scorer("mean_residual") is mean_residual_score
    with pytest.raises(ValueError):
        get_scorer("mape")


def test_sparsity_counts():
    coef = [-1.0, 0.0, 2.0, -0.5, 0.0]
    assert count_positive(coef) == 1
    assert count_nonzero(coef) == 3


def test_naive_last_value_score():
    assert naive_last_value_score([1.0, 2.0, 3.0], [3.0, 5.0]) == pytest.approx(np.sqrt(2.0))
    assert naive_last_value_score([1.0, 2.0, 3.0], [3.0, 5.0], scoring="mean_residual") == pytest.approx(1.0)
    assert np.isnan(naive_last_value_score([], [1.0]))


def test_hash_forecast_is_stable():
    a = hash_forecast([1.0, 2.0, 3.0])
    assert a == hash_forecast(np.array([1.0, 2.0, 3.0]))
    assert len(a) == 16
    assert a != hash_forecast([1.0, 2.0, 3.0000001])
