# export_forecaster_src/main.py

"""
Elastic-Net forecasting of annual agricultural export volumes.

This is the main entry point of the export forecaster.

Purpose
-------
- Load export records (product, year, volume) and a base covariate table
- Aggregate records into one contiguous annual series per product
- Lag the covariates by 1..5 years and split each product into training,
  validation (last 5 known years) and forecast (next 11 years) rows
- Grid-search Elastic-Net (lambda, alpha) per product, rank fits by
  validation score and keep the forecast of every grid point
- Optionally fit an AIC-ranked ARIMA benchmark per product
- Export ranked records to CSV and chart the selected forecast per product

Configuration-Driven Workflow
-----------------------------
Grid, split and output settings live in config/forecaster.yaml. CLI arguments
override configuration values where applicable.
"""

import argparse
import logging
import sys
import warnings
from pathlib import Path
from typing import Dict, List, Optional

from validation import DataValidationError, run_validation_pipeline

from . import config_utils
from .config_utils import initialize_config, get_config_value
from .data_utils import load_export_records, load_covariate_table, aggregate_export_series
from .transform_utils import build_lagged_covariates, split_all_products, DEFAULT_LAGS
from .grid_search import (
    GridSearchError, GridSearchResult, alpha_sequence, build_grid, grid_search_products,
    lambda_sequence
)
from .metrics_utils import naive_last_value_score
from .arima_utils import arima_benchmark, arima_order_list
from .parsing_utils import (
    parse_float_list, parse_intervals_arg, parse_products, parse_range_arg,
    validate_log_level, validate_scoring
)
from .plotting_utils import plot_selected_forecast
from .file_utils import append_metrics_csv_row, ensure_dir, resolve_path, write_ranked_results

logger = logging.getLogger(__name__)

SUMMARY_HEADER = [
    "product", "scoring", "lambda", "alpha", "score", "rmse", "mean_residual",
    "n_positive", "n_nonzero", "naive_score", "grid_points", "failed_points",
    "arima_order", "forecast_hash",
]


def resolve_grid(args: Optional[argparse.Namespace] = None):
    """
    Build the hyperparameter grid from CLI lists or configured sequences.

    Explicit ``--lambdas`` / ``--alphas`` lists win; otherwise lambdas are
    log-spaced and alphas linear per ``grid_search.lambdas`` and
    ``grid_search.alphas``.
    """
    lambdas = parse_float_list(getattr(args, "lambdas", None) if args is not None else None)
    if lambdas is None:
        lambdas = lambda_sequence(
            n=int(get_config_value("grid_search.lambdas.n", 20, args, "n_lambdas")),
            lo_exp=float(get_config_value("grid_search.lambdas.lo_exp", -3.0)),
            hi_exp=float(get_config_value("grid_search.lambdas.hi_exp", 2.0)),
        )
    alphas = parse_float_list(getattr(args, "alphas", None) if args is not None else None)
    if alphas is None:
        alphas = alpha_sequence(int(get_config_value("grid_search.alphas.n", 11, args, "n_alphas")))
    return build_grid(lambdas, alphas)


def run_export_workflow(exports_path: Path,
                        covariates_path: Path,
                        figures_dir: Optional[Path],
                        results_csv_path: Optional[Path],
                        args: Optional[argparse.Namespace] = None) -> Dict[str, GridSearchResult]:
    """
    Execute the grid-search forecasting workflow for every requested product.

    Parameters
    ----------
    exports_path : Path
        Export records CSV with columns ['product', 'year', 'volume']
    covariates_path : Path
        Base covariate CSV with a 'year' column
    figures_dir : Optional[Path]
        Output directory for forecast charts (None to skip charts)
    results_csv_path : Optional[Path]
        If provided, write every ranked record to this CSV and one summary
        row per product to ``<stem>_selected.csv``; both are replaced each run
    args : Optional[argparse.Namespace]
        CLI arguments for configuration overrides

    Returns
    -------
    Dict[str, GridSearchResult]
        Product to ranked grid-search result

    Workflow
    --------
    - Load records and aggregate to annual series per product
    - Lag covariates, validate inputs, split per product
    - Grid search per product; log top 5 records and failures
    - Optional ARIMA benchmark, CSV export and charts
    """

    validation_window = int(get_config_value("grid_search.validation_window", 5, args, "validation_window"))
    forecast_horizon = int(get_config_value("grid_search.forecast_horizon", 11, args, "forecast_horizon"))
    scoring = validate_scoring(get_config_value("grid_search.scoring", "rmse", args, "scoring"))
    n_jobs = int(get_config_value("grid_search.n_jobs", 1, args, "n_jobs"))
    fit_timeout = get_config_value("grid_search.fit_timeout", None, args, "fit_timeout")
    max_iter = int(get_config_value("grid_search.max_iter", 10000))
    lags_arg = getattr(args, "lags", None) if args is not None else None
    lags = parse_range_arg(lags_arg, default="1-5") if lags_arg else \
        list(get_config_value("features.lags", list(DEFAULT_LAGS)))

    records = load_export_records(
        exports_path,
        product_column=get_config_value("data.product_column", "product"),
        year_column=get_config_value("data.year_column", "year"),
        value_column=get_config_value("data.value_column", "volume"),
    )
    products = parse_products(getattr(args, "products", None) if args is not None else None) or None
    series = aggregate_export_series(records, products)

    base = load_covariate_table(covariates_path, year_column=get_config_value("data.year_column", "year"))
    covariates = build_lagged_covariates(base, lags)
    logger.info("Lagged covariate matrix: %d rows x %d columns (lags=%s)",
                covariates.shape[0], covariates.shape[1], lags)

    run_validation_pipeline(series, covariates, validation_window, forecast_horizon,
                            config_manager=config_utils.config_manager)

    splits = split_all_products(series, covariates, validation_window, forecast_horizon)
    grid = resolve_grid(args)
    logger.info("Grid: %d points; scoring=%s; n_jobs=%d; fit_timeout=%s",
                len(grid), scoring, n_jobs, fit_timeout)

    results = grid_search_products(
        splits, grid,
        scoring=scoring,
        n_jobs=n_jobs,
        fit_timeout=None if fit_timeout is None else float(fit_timeout),
        max_iter=max_iter,
        progress=True,
    )

    use_arima = bool(get_config_value("arima.enabled", False, args, "arima"))
    order_list: List = []
    coverage_levels: List[int] = []
    if use_arima:
        order_list = arima_order_list(
            parse_range_arg(getattr(args, "p_range", None), "0-2", "arima.search_space.p_range", args),
            parse_range_arg(getattr(args, "d_range", None), "0-1", "arima.search_space.d_range", args),
            parse_range_arg(getattr(args, "q_range", None), "0-2", "arima.search_space.q_range", args),
        )
        intervals_cfg = get_config_value("arima.intervals", [80, 95])
        coverage_levels = parse_intervals_arg(
            getattr(args, "intervals", None) if args is not None else None,
            default=",".join(str(v) for v in intervals_cfg),
        )

    summary_csv = results_csv_path.with_name(results_csv_path.stem + "_selected.csv") if results_csv_path else None
    # One row per product for this run only, like the ranked CSV
    if summary_csv is not None and summary_csv.exists():
        logger.info("Replacing previous selection summary: %s", summary_csv)
        summary_csv.unlink()

    for product, result in results.items():
        split = splits[product]
        table = result.to_frame()
        if not table.empty:
            logger.info("Top 5 models for %s by %s:\n%s", product, scoring,
                        table.head()[["rank", "lambda", "alpha", "score", "rmse",
                                      "mean_residual", "n_positive", "n_nonzero"]].to_string(index=False))

        cut = len(split.y_train) - split.validation_window
        naive = naive_last_value_score(split.y_train.iloc[:cut], split.y_train.iloc[cut:], scoring)
        logger.info("%s: naive last-value %s=%.6g", product, scoring, naive)

        arima_order, arima_fc = None, None
        if use_arima:
            try:
                arima_order, arima_fc = arima_benchmark(split.y_train, order_list, forecast_horizon,
                                                         coverage_levels, progress=True)
            except Exception as e:
                logger.warning("%s: ARIMA benchmark failed: %s", product, e)

        best = result.selected
        if best is None:
            continue

        if figures_dir is not None:
            plot_selected_forecast(
                split.y_train, result.selected_forecast(), figures_dir / f"Forecast_{product}.png",
                validation_window=split.validation_window, arima_forecast=arima_fc,
                title=f"{product}: lambda={best.lambda_:.4g}, alpha={best.alpha:.2f}",
            )

        row_best = {
            "product": product,
            "scoring": scoring,
            "lambda": best.lambda_,
            "alpha": best.alpha,
            "score": best.score,
            "rmse": best.rmse,
            "mean_residual": best.mean_residual,
            "n_positive": best.n_positive,
            "n_nonzero": best.n_nonzero,
            "naive_score": naive,
            "grid_points": result.n_points,
            "failed_points": len(result.failed),
            "arima_order": "" if arima_order is None else str(arima_order),
            "forecast_hash": table.iloc[0]["forecast_hash"],
        }
        append_metrics_csv_row(summary_csv, row_best, SUMMARY_HEADER)

    if results_csv_path is not None:
        write_ranked_results(results, results_csv_path)

    logger.info("Export workflow completed for %d products", len(results))
    return results


def setup_cli_parser() -> argparse.ArgumentParser:
    """
    Set up the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Elastic-Net grid-search forecasting of annual export volumes."
    )

    # Data and output arguments
    parser.add_argument(
        "--exports-csv", type=str, default="data/exports.csv",
        help="Export records CSV with columns product, year (or date), volume."
    )
    parser.add_argument(
        "--covariates-csv", type=str, default="data/covariates.csv",
        help="Base covariate CSV with a 'year' column; must extend past the last export year."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Alternative YAML configuration file."
    )
    parser.add_argument(
        "--products", type=str, default=None,
        help="Comma-separated products to model (default: every product in the export CSV)."
    )
    parser.add_argument(
        "--results-csv", type=str, default=None,
        help="Write ranked records for every product to this CSV (resolved relative to base_dir if not absolute)."
    )
    parser.add_argument(
        "--figures-dir", type=str, default=None,
        help="Directory to write forecast charts. Uses config default if not specified."
    )
    parser.add_argument(
        "--no-figures", action="store_true", default=False,
        help="Skip forecast charts."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity level."
    )

    # Split and features
    parser.add_argument(
        "--validation-window", type=int, default=None,
        help="Most recent known years held out for scoring (config default 5)."
    )
    parser.add_argument(
        "--forecast-horizon", type=int, default=None,
        help="Years to forecast after the last known year (config default 11)."
    )
    parser.add_argument(
        "--lags", type=str, default=None,
        help="Covariate lags, e.g. '1-5' or '1,2,4'."
    )

    # Grid search controls
    parser.add_argument(
        "--lambdas", type=str, default=None,
        help="Comma-separated lambda values. Overrides the configured log-spaced sequence."
    )
    parser.add_argument(
        "--n-lambdas", type=int, default=None,
        help="Number of log-spaced lambda values."
    )
    parser.add_argument(
        "--alphas", type=str, default=None,
        help="Comma-separated alpha values in [0, 1]. Overrides the configured linear sequence."
    )
    parser.add_argument(
        "--n-alphas", type=int, default=None,
        help="Number of linearly spaced alpha values in [0, 1]."
    )
    parser.add_argument(
        "--scoring", choices=["rmse", "mean_residual"], default=None,
        help="Validation score: 'rmse' or 'mean_residual' (absolute mean residual over the validation window)."
    )
    parser.add_argument(
        "--n-jobs", type=int, default=None,
        help="Worker threads for grid points."
    )
    parser.add_argument(
        "--fit-timeout", type=float, default=None,
        help="Seconds allowed per fit; timed-out fits are recorded as failed."
    )

    # ARIMA benchmark
    parser.add_argument(
        "--arima", action="store_true", default=None,
        help="Also fit an AIC-ranked ARIMA benchmark per product."
    )
    parser.add_argument("--p-range", type=str, default=None, help="ARIMA AR orders, e.g. '0-2'.")
    parser.add_argument("--d-range", type=str, default=None, help="ARIMA differencing orders, e.g. '0-1'.")
    parser.add_argument("--q-range", type=str, default=None, help="ARIMA MA orders, e.g. '0-2'.")
    parser.add_argument(
        "--intervals", type=str, default=None,
        help="Comma-separated ARIMA interval coverages (e.g., '80,95')."
    )

    return parser


def setup_logging(log_level: str) -> None:
    """
    Configure logging with specified level and warning filters.

    Parameters
    ----------
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = validate_log_level(log_level)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    if level == "DEBUG":
        warnings.resetwarnings()
        warnings.filterwarnings("default")
    else:
        from statsmodels.tools.sm_exceptions import ConvergenceWarning as SMConvergenceWarning
        from sklearn.exceptions import ConvergenceWarning as SKConvergenceWarning
        warnings.filterwarnings("ignore", category=SMConvergenceWarning)
        warnings.filterwarnings("ignore", category=SKConvergenceWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)
        warnings.filterwarnings("ignore", category=UserWarning, module="statsmodels")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the export forecasting application.
    """
    parser = setup_cli_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    initialize_config(args.config)

    base_dir = Path(__file__).resolve().parent.parent

    exports_path = resolve_path(args.exports_csv, base_dir)
    covariates_path = resolve_path(args.covariates_csv, base_dir)

    figures_dir: Optional[Path] = None
    if not args.no_figures:
        figures_dir = resolve_path(get_config_value("output.figures_dir", "figures", args, "figures_dir"), base_dir)
        ensure_dir(figures_dir)

    results_csv_path: Optional[Path] = None
    results_csv = get_config_value("output.results_csv", None, args, "results_csv")
    if results_csv:
        results_csv_path = resolve_path(results_csv, base_dir)

    try:
        run_export_workflow(exports_path, covariates_path, figures_dir, results_csv_path, args)
    except (GridSearchError, DataValidationError) as e:
        logger.error("Inputs rejected: %s", e)
        sys.exit(2)


if __name__ == "__main__":
    main()
