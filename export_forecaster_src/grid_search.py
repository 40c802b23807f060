# export_forecaster_src/grid_search.py

"""
Elastic-Net grid search and forecast selection.

For one product the search fits a regularised linear model per (lambda, alpha)
grid point on the oldest rows of the covariate matrix, scores it on the most
recent ``validation_window`` rows, ranks the surviving fits and forecasts every
row of the forward covariate matrix.

Penalty parametrisation follows glmnet::

    RSS / (2 n) + lambda * ((1 - alpha) / 2 * ||b||_2^2 + alpha * ||b||_1)

so ``alpha=0`` is pure ridge shrinkage, ``alpha=1`` is pure lasso and
``lambda=0`` is ordinary least squares. Covariates are standardised before
fitting and coefficients are reported on that scale.
"""

import logging
import math
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, asdict
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.linear_model import ElasticNet, LinearRegression, Ridge
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from tqdm.auto import tqdm

from .metrics_utils import (
    count_nonzero, count_positive, get_scorer, hash_forecast, mean_residual_score, rmse
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 10000


class GridSearchError(ValueError):
    """Base class for caller-contract violations detected before fitting."""


class EmptyGridError(GridSearchError):
    """The hyperparameter grid contains no points."""


class IncompleteDataError(GridSearchError):
    """Covariates or targets contain missing values or do not line up."""


class InsufficientDataError(GridSearchError):
    """Too few rows to hold out the validation window or cover the forecast."""


class FitConvergenceError(RuntimeError):
    """The solver stopped at its iteration limit without converging."""


@dataclass(frozen=True)
class GridPoint:
    """One (lambda, alpha) combination."""
    lambda_: float
    alpha: float

    def __post_init__(self):
        if not (self.lambda_ >= 0) or math.isinf(self.lambda_):
            raise ValueError(f"lambda must be a finite value >= 0, got {self.lambda_!r}")
        if not (0.0 <= self.alpha <= 1.0):
            raise ValueError(f"alpha must lie in [0, 1], got {self.alpha!r}")


@dataclass(frozen=True)
class FittedModelRecord:
    """Outcome of fitting and scoring a single grid point for one product."""
    product: str
    lambda_: float
    alpha: float
    score: float
    rmse: float
    mean_residual: float
    coefficients: Optional[Tuple[float, ...]]
    intercept: Optional[float]
    forecast: Optional[Tuple[float, ...]]
    n_positive: int
    n_nonzero: int
    failed: bool = False
    error: Optional[str] = None

    def rank_key(self) -> Tuple[float, int, float, float]:
        # Equal scores prefer sparser, then less regularised fits; alpha makes the order total.
        return (self.score, self.n_nonzero, self.lambda_, self.alpha)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GridSearchResult:
    """Ranked records for one product."""
    product: str
    scoring: str
    ranked: List[FittedModelRecord]
    failed: List[FittedModelRecord] = field(default_factory=list)
    forecast_periods: List[Any] = field(default_factory=list)

    @property
    def selected(self) -> Optional[FittedModelRecord]:
        return self.ranked[0] if self.ranked else None

    @property
    def n_points(self) -> int:
        return len(self.ranked) + len(self.failed)

    def selected_forecast(self) -> Optional[pd.Series]:
        """Forecast of the top-ranked record indexed by forecast period."""
        best = self.selected
        if best is None:
            return None
        index = self.forecast_periods or list(range(len(best.forecast)))
        return pd.Series(best.forecast, index=index, name=self.product)

    def to_frame(self, include_failed: bool = False) -> pd.DataFrame:
        """
        Tabulate the ranked records, one row per grid point.

        Forecast values are spread over ``fc_<period>`` columns.
        """
        rows = []
        records = list(self.ranked) + (list(self.failed) if include_failed else [])
        for rank, rec in enumerate(records, start=1):
            row = {
                "product": rec.product,
                "rank": rank if not rec.failed else None,
                "lambda": rec.lambda_,
                "alpha": rec.alpha,
                "score": rec.score,
                "rmse": rec.rmse,
                "mean_residual": rec.mean_residual,
                "n_positive": rec.n_positive,
                "n_nonzero": rec.n_nonzero,
                "failed": rec.failed,
                "error": rec.error or "",
                "forecast_hash": hash_forecast(rec.forecast) if rec.forecast is not None else "",
            }
            for period, value in zip(self.forecast_periods, rec.forecast or ()):
                row[f"fc_{period}"] = value
            rows.append(row)
        return pd.DataFrame(rows)


# ---------------------------------------------------------------------------
# Grid construction
# ---------------------------------------------------------------------------

def lambda_sequence(n: int = 20, lo_exp: float = -3.0, hi_exp: float = 2.0) -> List[float]:
    """
    Log-spaced regularisation strengths from ``10**hi_exp`` down to ``10**lo_exp``.

    Parameters
    ----------
    n : int, default=20
        Number of values
    lo_exp, hi_exp : float
        Base-10 exponents of the smallest and largest lambda

    Returns
    -------
    List[float]
        Descending lambda values
    """
    if n < 1:
        raise ValueError("n must be >= 1")
    return [float(v) for v in np.logspace(hi_exp, lo_exp, num=n)]


def alpha_sequence(n: int = 11) -> List[float]:
    """Linearly spaced mixing weights covering [0, 1] inclusive."""
    if n < 1:
        raise ValueError("n must be >= 1")
    if n == 1:
        return [1.0]
    return [float(v) for v in np.linspace(0.0, 1.0, num=n)]


def build_grid(lambdas: Iterable[float], alphas: Iterable[float]) -> List[GridPoint]:
    """
    Cross product of lambda and alpha values.

    Lambdas are visited in descending order and alphas in ascending order;
    duplicate values are dropped.
    """
    lam = sorted({float(v) for v in lambdas}, reverse=True)
    alp = sorted({float(v) for v in alphas})
    return [GridPoint(lambda_=l, alpha=a) for l in lam for a in alp]


# ---------------------------------------------------------------------------
# Model construction
# ---------------------------------------------------------------------------

def make_default_model(point: GridPoint, n_train: int, max_iter: int = DEFAULT_MAX_ITER) -> Pipeline:
    """
    Build the standardise-then-regress pipeline for a grid point.

    ``lambda == 0`` gives ordinary least squares and ``alpha == 0`` a ridge fit
    with the penalty rescaled to the glmnet objective; everything else is an
    ``ElasticNet`` with ``alpha=lambda`` and ``l1_ratio=alpha``.
    """
    if point.lambda_ == 0:
        reg = LinearRegression()
    elif point.alpha == 0:
        reg = Ridge(alpha=n_train * point.lambda_)
    else:
        reg = ElasticNet(
            alpha=point.lambda_,
            l1_ratio=point.alpha,
            max_iter=max_iter,
            fit_intercept=True,
        )
    return Pipeline([("scaler", StandardScaler()), ("model", reg)])


def _final_estimator(model):
    steps = getattr(model, "steps", None)
    return steps[-1][1] if steps else model


def _check_converged(estimator) -> None:
    n_iter = getattr(estimator, "n_iter_", None)
    max_iter = getattr(estimator, "max_iter", None)
    if n_iter is None or max_iter is None:
        return
    if int(np.max(n_iter)) >= int(max_iter):
        raise FitConvergenceError(f"solver hit max_iter={max_iter} without converging")


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _PreparedData:
    product: str
    X_fit: np.ndarray
    y_fit: np.ndarray
    X_valid: np.ndarray
    y_valid: np.ndarray
    X_forecast: np.ndarray
    forecast_periods: Tuple[Any, ...]


def _as_matrix(x, name: str) -> np.ndarray:
    try:
        arr = np.asarray(x, dtype=float)
    except (TypeError, ValueError) as e:
        raise IncompleteDataError(f"{name} must be numeric: {e}") from e
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise IncompleteDataError(f"{name} must be two-dimensional, got shape {arr.shape}")
    return arr


def validate_grid_inputs(series: Union[pd.Series, Sequence[float]],
                         covariates_train: Union[pd.DataFrame, np.ndarray],
                         covariates_forecast: Union[pd.DataFrame, np.ndarray],
                         validation_window: int,
                         grid: Sequence[GridPoint],
                         product: Optional[str] = None) -> _PreparedData:
    """
    Check a grid-search request and split it into fit/validation/forecast arrays.

    Every fatal condition is detected here, before any model is fitted.

    Raises
    ------
    EmptyGridError
        If ``grid`` has no points
    IncompleteDataError
        If any covariate or target value is missing or non-finite, or the
        covariates do not line up with the series
    InsufficientDataError
        If ``validation_window`` is not smaller than the number of rows
    """
    if grid is None or len(grid) == 0:
        raise EmptyGridError("Hyperparameter grid contains no points")

    if product is None:
        product = str(series.name) if isinstance(series, pd.Series) and series.name is not None else "series"

    y = np.asarray(series, dtype=float).ravel()
    X = _as_matrix(covariates_train, "covariates_train")
    X_fc = _as_matrix(covariates_forecast, "covariates_forecast")

    if not np.all(np.isfinite(X)):
        bad = int(np.sum(~np.all(np.isfinite(X), axis=1)))
        raise IncompleteDataError(f"{product}: {bad} training covariate row(s) contain missing values")
    if X_fc.size and not np.all(np.isfinite(X_fc)):
        bad = int(np.sum(~np.all(np.isfinite(X_fc), axis=1)))
        raise IncompleteDataError(f"{product}: {bad} forecast covariate row(s) contain missing values")
    if not np.all(np.isfinite(y)):
        raise IncompleteDataError(f"{product}: target series contains missing values")

    if X.shape[0] != y.shape[0]:
        raise IncompleteDataError(
            f"{product}: covariates_train has {X.shape[0]} rows but series has {y.shape[0]}"
        )
    if isinstance(series, pd.Series) and isinstance(covariates_train, (pd.DataFrame, pd.Series)):
        if not series.index.equals(covariates_train.index):
            raise IncompleteDataError(f"{product}: covariates_train periods do not match series periods")
    if X_fc.shape[0] and X_fc.shape[1] != X.shape[1]:
        raise IncompleteDataError(
            f"{product}: covariates_forecast has {X_fc.shape[1]} columns, expected {X.shape[1]}"
        )

    n = y.shape[0]
    if validation_window <= 0:
        raise InsufficientDataError(f"{product}: validation_window must be positive, got {validation_window}")
    if validation_window >= n:
        raise InsufficientDataError(
            f"{product}: validation_window={validation_window} leaves no training rows (n={n})"
        )

    if isinstance(covariates_forecast, (pd.DataFrame, pd.Series)):
        periods = tuple(covariates_forecast.index)
    else:
        periods = tuple(range(X_fc.shape[0]))

    cut = n - validation_window
    return _PreparedData(
        product=product,
        X_fit=X[:cut],
        y_fit=y[:cut],
        X_valid=X[cut:],
        y_valid=y[cut:],
        X_forecast=X_fc,
        forecast_periods=periods,
    )


# ---------------------------------------------------------------------------
# Fitting
# ---------------------------------------------------------------------------

ModelFactory = Callable[[GridPoint, int], Any]


def _failed_record(product: str, point: GridPoint, error: str) -> FittedModelRecord:
    return FittedModelRecord(
        product=product,
        lambda_=point.lambda_,
        alpha=point.alpha,
        score=float("inf"),
        rmse=float("inf"),
        mean_residual=float("inf"),
        coefficients=None,
        intercept=None,
        forecast=None,
        n_positive=0,
        n_nonzero=0,
        failed=True,
        error=error,
    )


def _evaluate_point(point: GridPoint,
                    data: _PreparedData,
                    scoring: str,
                    model_factory: ModelFactory) -> FittedModelRecord:
    scorer = get_scorer(scoring)
    try:
        model = model_factory(point, data.X_fit.shape[0])
        model.fit(data.X_fit, data.y_fit)
        _check_converged(_final_estimator(model))

        y_hat = np.asarray(model.predict(data.X_valid), dtype=float).ravel()
        if data.X_forecast.shape[0]:
            fc = np.asarray(model.predict(data.X_forecast), dtype=float).ravel()
        else:
            fc = np.empty(0)
        if not (np.all(np.isfinite(y_hat)) and np.all(np.isfinite(fc))):
            raise FloatingPointError("non-finite predictions")

        est = _final_estimator(model)
        coef = np.asarray(getattr(est, "coef_", np.empty(0)), dtype=float).ravel()
        intercept = float(np.ravel(getattr(est, "intercept_", 0.0))[0])
    except Exception as e:
        logger.warning("%s: fit failed at lambda=%.6g alpha=%.3f: %s",
                       data.product, point.lambda_, point.alpha, e)
        return _failed_record(data.product, point, f"{type(e).__name__}: {e}")

    return FittedModelRecord(
        product=data.product,
        lambda_=point.lambda_,
        alpha=point.alpha,
        score=scorer(data.y_valid, y_hat),
        rmse=rmse(data.y_valid, y_hat),
        mean_residual=mean_residual_score(data.y_valid, y_hat),
        coefficients=tuple(float(c) for c in coef),
        intercept=intercept,
        forecast=tuple(float(v) for v in fc),
        n_positive=count_positive(coef),
        n_nonzero=count_nonzero(coef),
    )


def fit_grid_point(point: GridPoint,
                   series: Union[pd.Series, Sequence[float]],
                   covariates_train: Union[pd.DataFrame, np.ndarray],
                   covariates_forecast: Union[pd.DataFrame, np.ndarray],
                   validation_window: int,
                   product: Optional[str] = None,
                   scoring: str = "rmse",
                   model_factory: Optional[ModelFactory] = None,
                   max_iter: int = DEFAULT_MAX_ITER) -> FittedModelRecord:
    """
    Fit, score and forecast a single grid point.

    Numerical failures are returned as a failed record rather than raised;
    contract violations raise the errors of :func:`validate_grid_inputs`.
    """
    get_scorer(scoring)
    data = validate_grid_inputs(series, covariates_train, covariates_forecast,
                                validation_window, [point], product)
    factory = model_factory or partial(make_default_model, max_iter=max_iter)
    return _evaluate_point(point, data, scoring, factory)


def rank_records(records: Iterable[FittedModelRecord]) -> List[FittedModelRecord]:
    """
    Order surviving records by validation score.

    Failed records are dropped. Ties on score go to the record with fewer
    non-zero coefficients, then to the smaller lambda, then the smaller alpha.
    """
    return sorted((r for r in records if not r.failed), key=FittedModelRecord.rank_key)


def _run_pool(points: Sequence[GridPoint],
              evaluate: Callable[[GridPoint], FittedModelRecord],
              product: str,
              n_jobs: int,
              fit_timeout: Optional[float],
              progress: bool) -> List[FittedModelRecord]:
    """
    Evaluate grid points on a thread pool, in point order.

    ``fit_timeout`` is measured from the moment a worker starts a fit, so
    points still queued behind a slow fit are not charged for the wait. An
    expired fit cannot be interrupted; its worker stays busy until the fit
    returns and its result is discarded.
    """
    records: List[Optional[FittedModelRecord]] = [None] * len(points)
    started: Dict[int, float] = {}

    def run(i: int) -> FittedModelRecord:
        started[i] = time.monotonic()
        return evaluate(points[i])

    executor = ThreadPoolExecutor(max_workers=max(1, n_jobs))
    bar = tqdm(total=len(points), desc=f"Grid search {product}", disable=not progress)
    try:
        index_of = {executor.submit(run, i): i for i in range(len(points))}
        pending = set(index_of)
        while pending:
            wait_for = None
            if fit_timeout is not None:
                deadlines = [started[index_of[f]] + fit_timeout for f in pending if index_of[f] in started]
                wait_for = max(0.0, min(deadlines) - time.monotonic()) if deadlines else fit_timeout

            done, pending = wait(pending, timeout=wait_for, return_when=FIRST_COMPLETED)
            for fut in done:
                records[index_of[fut]] = fut.result()
                bar.update(1)

            if fit_timeout is None:
                continue
            now = time.monotonic()
            for fut in list(pending):
                i = index_of[fut]
                if fut.done() or i not in started or now - started[i] < fit_timeout:
                    continue
                pending.discard(fut)
                point = points[i]
                logger.warning("%s: fit timed out after %.3gs at lambda=%.6g alpha=%.3f",
                               product, fit_timeout, point.lambda_, point.alpha)
                records[i] = _failed_record(product, point, f"TimeoutError: exceeded {fit_timeout}s")
                bar.update(1)
    finally:
        bar.close()
        # Abandon in-flight fits; they share no state with the collected records.
        executor.shutdown(wait=False, cancel_futures=True)
    return records


def grid_search(series: Union[pd.Series, Sequence[float]],
                covariates_train: Union[pd.DataFrame, np.ndarray],
                covariates_forecast: Union[pd.DataFrame, np.ndarray],
                validation_window: int,
                grid: Sequence[GridPoint],
                product: Optional[str] = None,
                scoring: str = "rmse",
                n_jobs: int = 1,
                fit_timeout: Optional[float] = None,
                model_factory: Optional[ModelFactory] = None,
                max_iter: int = DEFAULT_MAX_ITER,
                progress: bool = False) -> GridSearchResult:
    """
    Grid-search Elastic-Net hyperparameters for one product and rank by validation score.

    Parameters
    ----------
    series : Union[pd.Series, Sequence[float]]
        Target values in period order
    covariates_train : Union[pd.DataFrame, np.ndarray]
        Covariates aligned row-for-row with ``series``
    covariates_forecast : Union[pd.DataFrame, np.ndarray]
        Covariates for the periods after the last target, in period order
    validation_window : int
        Number of most recent rows held out for scoring
    grid : Sequence[GridPoint]
        Hyperparameter combinations to evaluate
    product : str, optional
        Label for records and logs; defaults to ``series.name``
    scoring : str, default="rmse"
        ``"rmse"`` or ``"mean_residual"`` (absolute mean residual,
        which lets offsetting errors cancel)
    n_jobs : int, default=1
        Worker threads used to evaluate grid points
    fit_timeout : float, optional
        Seconds to wait for each fit; a timed-out fit is recorded as failed
    model_factory : callable, optional
        ``factory(point, n_train)`` returning an unfitted estimator; defaults
        to :func:`make_default_model`
    max_iter : int, default=10000
        Coordinate-descent iteration limit for the default model
    progress : bool, default=False
        Show a tqdm progress bar

    Returns
    -------
    GridSearchResult
        Ranked surviving records plus the failed ones

    Notes
    -----
    - All input checks run before the first fit, so a fatal error never
      leaves a partial grid behind.
    - Grid points share no mutable state; completion order does not affect
      the ranking.
    """
    get_scorer(scoring)
    data = validate_grid_inputs(series, covariates_train, covariates_forecast,
                                validation_window, grid, product)
    factory = model_factory or partial(make_default_model, max_iter=max_iter)
    evaluate = partial(_evaluate_point, data=data, scoring=scoring, model_factory=factory)

    points = list(grid)
    if n_jobs > 1 or fit_timeout is not None:
        records = _run_pool(points, evaluate, data.product, n_jobs, fit_timeout, progress)
    else:
        records = [evaluate(p) for p in tqdm(points, desc=f"Grid search {data.product}", disable=not progress)]

    ranked = rank_records(records)
    failed = [r for r in records if r.failed]
    if failed:
        logger.warning("%s: %d of %d grid points failed", data.product, len(failed), len(points))
    if ranked:
        best = ranked[0]
        logger.info("%s: selected lambda=%.6g alpha=%.3f (%s=%.6g, %d non-zero coefficients)",
                    data.product, best.lambda_, best.alpha, scoring, best.score, best.n_nonzero)
    else:
        logger.error("%s: every grid point failed", data.product)

    return GridSearchResult(
        product=data.product,
        scoring=scoring,
        ranked=ranked,
        failed=failed,
        forecast_periods=list(data.forecast_periods),
    )


def grid_search_products(splits: Mapping[str, Any],
                         grid: Sequence[GridPoint],
                         **kwargs) -> Dict[str, GridSearchResult]:
    """
    Run :func:`grid_search` for every product.

    Parameters
    ----------
    splits : Mapping[str, DataSplit]
        Per-product splits exposing ``y_train``, ``X_train``, ``X_forecast``
        and ``validation_window``
    grid : Sequence[GridPoint]
        Hyperparameter grid shared by all products
    **kwargs
        Passed through to :func:`grid_search`

    Returns
    -------
    Dict[str, GridSearchResult]
        Product to ranked result, in the order of ``splits``
    """
    # Validate every product before fitting any of them.
    for product, split in splits.items():
        validate_grid_inputs(split.y_train, split.X_train, split.X_forecast,
                             split.validation_window, grid, product)

    return {
        product: grid_search(split.y_train, split.X_train, split.X_forecast,
                             split.validation_window, grid, product=product, **kwargs)
        for product, split in splits.items()
    }
