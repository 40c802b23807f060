# export_forecaster_src/transform_utils.py

import pandas as pd
import numpy as np
from dataclasses import dataclass
from typing import Iterable, List, Sequence
import logging

from .grid_search import IncompleteDataError, InsufficientDataError

logger = logging.getLogger(__name__)

DEFAULT_LAGS = (1, 2, 3, 4, 5)


def build_lagged_covariates(table: pd.DataFrame, lags: Iterable[int] = DEFAULT_LAGS) -> pd.DataFrame:
    """
    Add lagged copies of every covariate column.

    For each original column ``c`` and lag ``k`` a column ``c_lag{k}`` holding
    the value from ``k`` periods earlier is appended. Rows without history for
    the largest lag, or with any other missing value, are dropped.

    Parameters
    ----------
    table : pd.DataFrame
        Dense numeric covariates indexed by consecutive integer years
    lags : Iterable[int], default=(1, 2, 3, 4, 5)
        Positive lag offsets in periods

    Returns
    -------
    pd.DataFrame
        Original plus lagged columns, indexed by year

    Raises
    ------
    ValueError
        If a lag is not a positive integer or the index is not contiguous

    Examples
    --------
    >>> t = pd.DataFrame({"x": [1.0, 2.0, 3.0]}, index=[2000, 2001, 2002])
    >>> build_lagged_covariates(t, lags=[1]).to_dict("index")
    {2001: {'x': 2.0, 'x_lag1': 1.0}, 2002: {'x': 3.0, 'x_lag1': 2.0}}
    """
    lag_list = sorted({int(k) for k in lags})
    if not lag_list or lag_list[0] <= 0:
        raise ValueError(f"Lags must be positive integers, got {list(lags)}")

    table = table.sort_index()
    idx = table.index.to_numpy()
    if len(idx) > 1 and not np.all(np.diff(idx) == 1):
        raise ValueError("Covariate table index must be consecutive integer years")

    lagged = [table]
    for k in lag_list:
        shifted = table.shift(k)
        shifted.columns = [f"{c}_lag{k}" for c in table.columns]
        lagged.append(shifted)
    out = pd.concat(lagged, axis=1)

    before = len(out)
    out = out.dropna()
    logger.debug("Lagged covariates: %d columns, dropped %d of %d rows",
                 out.shape[1], before - len(out), before)
    return out


@dataclass(frozen=True)
class DataSplit:
    """
    Per-product partition of the covariate matrix by period.

    ``X_train`` covers every period with a known target (training rows
    followed by the ``validation_window`` validation rows); ``X_forecast``
    covers the forecast periods after the last known target.
    """
    product: str
    y_train: pd.Series
    X_train: pd.DataFrame
    X_forecast: pd.DataFrame
    validation_window: int

    @property
    def training_periods(self) -> List[int]:
        return list(self.y_train.index[: len(self.y_train) - self.validation_window])

    @property
    def validation_periods(self) -> List[int]:
        return list(self.y_train.index[len(self.y_train) - self.validation_window:])

    @property
    def forecast_periods(self) -> List[int]:
        return list(self.X_forecast.index)


def split_for_product(series: pd.Series,
                      covariates: pd.DataFrame,
                      validation_window: int = 5,
                      forecast_horizon: int = 11) -> DataSplit:
    """
    Align a product series with the lagged covariates and split by period.

    Parameters
    ----------
    series : pd.Series
        Annual target indexed by consecutive integer years
    covariates : pd.DataFrame
        Lagged covariate matrix; must cover every series year and extend
        ``forecast_horizon`` years past the last one
    validation_window : int, default=5
        Number of most recent target years held out for scoring
    forecast_horizon : int, default=11
        Number of forecast years after the last target year

    Returns
    -------
    DataSplit
        Training/validation rows and forecast rows for the product

    Raises
    ------
    IncompleteDataError
        If covariates are missing for any target year
    InsufficientDataError
        If covariates stop short of the forecast horizon
    """
    product = str(series.name) if series.name is not None else "series"
    series = series.sort_index()
    years = series.index

    missing = years.difference(covariates.index)
    if len(missing):
        raise IncompleteDataError(
            f"{product}: no covariate row for year(s) {', '.join(str(y) for y in missing[:5])}"
            + (" ..." if len(missing) > 5 else "")
        )

    last_year = int(years.max())
    forecast_years = list(range(last_year + 1, last_year + 1 + forecast_horizon))
    available = [y for y in forecast_years if y in covariates.index]
    if len(available) < forecast_horizon:
        raise InsufficientDataError(
            f"{product}: covariates cover {len(available)} of {forecast_horizon} forecast years after {last_year}"
        )

    X_train = covariates.loc[years]
    X_forecast = covariates.loc[forecast_years]
    logger.info("%s: %d training, %d validation, %d forecast rows (targets %d-%d)",
                product, len(years) - validation_window, validation_window,
                len(forecast_years), int(years.min()), last_year)

    return DataSplit(
        product=product,
        y_train=series,
        X_train=X_train,
        X_forecast=X_forecast,
        validation_window=validation_window,
    )


def split_all_products(series_by_product: dict,
                       covariates: pd.DataFrame,
                       validation_window: int = 5,
                       forecast_horizon: int = 11,
                       products: Sequence[str] = None) -> dict:
    """Build a :class:`DataSplit` for each product, keeping input order."""
    names = list(products) if products else list(series_by_product)
    return {
        name: split_for_product(series_by_product[name], covariates, validation_window, forecast_horizon)
        for name in names
    }
