# export_forecaster_src/arima_utils.py

import numpy as np
import pandas as pd
from itertools import product
from typing import List, Optional, Sequence, Tuple, Union
from tqdm.auto import tqdm
import logging

from statsmodels.tsa.statespace.sarimax import SARIMAX

logger = logging.getLogger(__name__)


def arima_order_list(p_range: Sequence[int], d_range: Sequence[int], q_range: Sequence[int]) -> List[Tuple[int, int, int]]:
    """Cross product of candidate (p, d, q) orders."""
    return list(product(p_range, d_range, q_range))


def _fit_arima(endog: pd.Series, order: Tuple[int, int, int]):
    # Annual data: no seasonal component; trend only when the series is not differenced.
    trend = "c" if order[1] == 0 else None
    model = SARIMAX(
        np.asarray(endog, dtype=float),
        order=order,
        trend=trend,
        simple_differencing=False,
    )
    return model.fit(disp=False)


def optimize_arima(endog: Union[pd.Series, list],
                   order_list: List[Tuple[int, int, int]],
                   progress: bool = False) -> pd.DataFrame:
    """
    Grid-search ARIMA orders for an annual series and rank by AIC.

    Parameters
    ----------
    endog : Union[pd.Series, list]
        Annual target series
    order_list : List[Tuple[int, int, int]]
        Candidate (p, d, q) orders
    progress : bool, default=False
        Show a tqdm progress bar

    Returns
    -------
    pd.DataFrame
        Columns ['(p,d,q)', 'AIC', 'BIC', 'HQIC'] sorted ascending by AIC

    Notes
    -----
    - Orders whose fit raises are skipped
    - The model is a statsmodels SARIMAX without seasonal terms
    """
    results: List[List[object]] = []

    for order in tqdm(order_list, desc="Grid search ARIMA", disable=not progress):
        try:
            res = _fit_arima(endog, tuple(order))
        except Exception as e:
            logger.debug("ARIMA%s failed: %s", tuple(order), e)
            continue

        aic = float(getattr(res, "aic", np.nan))
        if not np.isfinite(aic):
            continue
        bic = float(getattr(res, "bic", np.nan))
        hqic = float(getattr(res, "hqic", np.nan))
        results.append([tuple(order), aic, bic, hqic])

    result_df = pd.DataFrame(results, columns=["(p,d,q)", "AIC", "BIC", "HQIC"])
    result_df = result_df.sort_values(by="AIC", ascending=True, kind="mergesort").reset_index(drop=True)
    return result_df


def forecast_arima(endog: pd.Series,
                   order: Tuple[int, int, int],
                   steps: int,
                   coverage_levels: Optional[List[int]] = None) -> pd.DataFrame:
    """
    Fit one ARIMA order and forecast ``steps`` years ahead with intervals.

    Parameters
    ----------
    endog : pd.Series
        Annual series indexed by consecutive integer years
    order : Tuple[int, int, int]
        (p, d, q) order
    steps : int
        Forecast horizon in years
    coverage_levels : List[int], optional
        Interval coverages in percent (default [80, 95])

    Returns
    -------
    pd.DataFrame
        Indexed by forecast year with 'forecast' plus 'lo_<lvl>' / 'hi_<lvl>' columns
    """
    if coverage_levels is None:
        coverage_levels = [80, 95]

    res = _fit_arima(endog, tuple(order))
    fc = res.get_forecast(steps=steps)

    last_year = int(endog.index.max())
    years = pd.Index(range(last_year + 1, last_year + 1 + steps), name="year")
    out = pd.DataFrame({"forecast": np.asarray(fc.predicted_mean, dtype=float)}, index=years)
    for lvl in coverage_levels:
        ci = np.asarray(fc.conf_int(alpha=1.0 - lvl / 100.0), dtype=float)
        out[f"lo_{lvl}"] = ci[:, 0]
        out[f"hi_{lvl}"] = ci[:, 1]
    return out


def arima_benchmark(endog: pd.Series,
                    order_list: List[Tuple[int, int, int]],
                    steps: int,
                    coverage_levels: Optional[List[int]] = None,
                    progress: bool = False) -> Tuple[Optional[Tuple[int, int, int]], Optional[pd.DataFrame]]:
    """
    Select the lowest-AIC order and forecast with it.

    Returns ``(None, None)`` when no order could be fit.
    """
    ranking = optimize_arima(endog, order_list, progress=progress)
    if ranking.empty:
        logger.warning("%s: no ARIMA order could be fit", endog.name)
        return None, None
    best = tuple(ranking.iloc[0]["(p,d,q)"])
    logger.info("%s: ARIMA%s selected with AIC=%.3f", endog.name, best, float(ranking.iloc[0]["AIC"]))
    return best, forecast_arima(endog, best, steps, coverage_levels)
