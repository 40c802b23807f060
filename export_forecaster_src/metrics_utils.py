# export_forecaster_src/metrics_utils.py

import hashlib
import numpy as np
import pandas as pd
from typing import Union, List
import logging

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], np.ndarray, pd.Series]


def to_1d_array(x: ArrayLike) -> np.ndarray:
    """
    Convert input to a 1D float numpy array.

    Unlike a plain ``np.asarray`` this flattens column vectors and single-column
    frames, so predictions from scikit-learn and pandas slices compare cleanly.

    Parameters
    ----------
    x : Union[List[float], np.ndarray, pd.Series]
        Input data to convert

    Returns
    -------
    np.ndarray
        1D float array
    """
    return np.asarray(x, dtype=float).ravel()


def _paired(y_true: ArrayLike, y_hat: ArrayLike):
    yt = to_1d_array(y_true)
    yh = to_1d_array(y_hat)
    if len(yt) != len(yh):
        raise ValueError(f"Length mismatch: {len(yt)} observed vs {len(yh)} predicted")
    return yt, yh


def mean_residual_score(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Absolute value of the mean signed residual over a window.

    Computes ``|mean(observed - predicted)|``. Over- and under-predictions
    cancel, so a model with large but offsetting per-period errors scores
    near zero. Prefer :func:`rmse` for a conventional error measure.

    Parameters
    ----------
    y_true : Union[List[float], np.ndarray, pd.Series]
        Observed values
    y_hat : Union[List[float], np.ndarray, pd.Series]
        Predicted values

    Returns
    -------
    float
        Non-negative score, or NaN if the window is empty
    """
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(abs(np.mean(yt - yh)))


def mae(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Mean Absolute Error.

    Parameters
    ----------
    y_true : Union[List[float], np.ndarray, pd.Series]
        True values
    y_hat : Union[List[float], np.ndarray, pd.Series]
        Predicted values

    Returns
    -------
    float
        Mean absolute error, or NaN if no data
    """
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.mean(np.abs(yh - yt)))


def rmse(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Root Mean Square Error.

    RMSE penalizes large errors more heavily than MAE, and unlike
    :func:`mean_residual_score` it cannot be driven to zero by errors of
    opposite sign cancelling out.

    Parameters
    ----------
    y_true : Union[List[float], np.ndarray, pd.Series]
        True values
    y_hat : Union[List[float], np.ndarray, pd.Series]
        Predicted values

    Returns
    -------
    float
        Root mean square error, or NaN if no data
    """
    yt, yh = _paired(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.sqrt(np.mean((yh - yt) ** 2)))


SCORERS = {
    "rmse": rmse,
    "mean_residual": mean_residual_score,
}


def get_scorer(name: str):
    """Return the validation scoring function registered under ``name``."""
    try:
        return SCORERS[name]
    except KeyError:
        raise ValueError(f"Unknown scoring '{name}'. Must be one of: {sorted(SCORERS)}") from None


def count_positive(coefficients: ArrayLike) -> int:
    """
    Count coefficients strictly greater than zero.

    Negative non-zero coefficients are not counted, so this undercounts the
    active features of a fit; see :func:`count_nonzero`.
    """
    return int(np.sum(to_1d_array(coefficients) > 0))


def count_nonzero(coefficients: ArrayLike) -> int:
    """Count coefficients whose absolute value is greater than zero."""
    return int(np.sum(np.abs(to_1d_array(coefficients)) > 0))


def naive_last_value_score(y_train: ArrayLike, y_valid: ArrayLike, scoring: str = "rmse") -> float:
    """
    Score a last-value benchmark over the validation window.

    Every validation period is predicted with the last training observation.

    Parameters
    ----------
    y_train : Union[List[float], np.ndarray, pd.Series]
        Observations used for fitting
    y_valid : Union[List[float], np.ndarray, pd.Series]
        Held-out observations
    scoring : str, default="rmse"
        Name of the scorer to apply

    Returns
    -------
    float
        Benchmark score, or NaN when there is no training history
    """
    tr = to_1d_array(y_train)
    va = to_1d_array(y_valid)
    if tr.size == 0:
        return float("nan")
    return get_scorer(scoring)(va, np.full(va.shape, tr[-1]))


def hash_forecast(seq: ArrayLike) -> str:
    """
    Generate a hash fingerprint for a forecast sequence.

    Parameters
    ----------
    seq : Union[List[float], np.ndarray, pd.Series]
        Forecast sequence to hash

    Returns
    -------
    str
        16-character SHA-1 hash of the forecast sequence

    Notes
    -----
    Identical forecasts across runs produce identical fingerprints, which
    makes repeated grid searches easy to compare in the results CSV.
    """
    arr = np.ascontiguousarray(to_1d_array(seq), dtype=np.float64)
    return hashlib.sha1(arr.tobytes()).hexdigest()[:16]
