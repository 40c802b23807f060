# export_forecaster_src/__init__.py

"""
Export Forecaster - Elastic-Net forecasting of annual agricultural exports

This package grid-searches regularised linear models over lagged covariates,
selects one model per product by its validation score and forecasts the
years after the last known export volume.

Key Components
--------------
- config_utils: Configuration management and CLI override support
- data_utils: Export record and covariate loading, annual aggregation
- transform_utils: Covariate lags and per-product train/forecast splits
- grid_search: (lambda, alpha) grid search, ranking and model records
- metrics_utils: Validation scores, sparsity counts and benchmarks
- arima_utils: AIC-ranked ARIMA benchmark
- parsing_utils: Command-line argument parsing
- plotting_utils: Forecast charts
- file_utils: File operations, CSV handling, and path utilities
- main: Main entry point and workflow orchestration

Usage
-----
    # Command-line usage
    python -m export_forecaster_src.main --exports-csv data/exports.csv --covariates-csv data/covariates.csv

    # Programmatic usage
    from export_forecaster_src import grid_search, build_grid, lambda_sequence, alpha_sequence
"""

__version__ = "1.0.0"
__author__ = "Export Forecaster Development Team"

from .config_utils import initialize_config, get_config_value
from .data_utils import load_export_records, load_covariate_table, aggregate_export_series
from .transform_utils import build_lagged_covariates, split_for_product, split_all_products, DataSplit
from .grid_search import (
    GridPoint,
    FittedModelRecord,
    GridSearchResult,
    GridSearchError,
    EmptyGridError,
    IncompleteDataError,
    InsufficientDataError,
    FitConvergenceError,
    lambda_sequence,
    alpha_sequence,
    build_grid,
    fit_grid_point,
    rank_records,
    grid_search,
    grid_search_products,
)
from .main import main

__all__ = [
    # Core functionality
    "main",
    "initialize_config",
    "get_config_value",
    "load_export_records",
    "load_covariate_table",
    "aggregate_export_series",
    "build_lagged_covariates",
    "split_for_product",
    "split_all_products",
    "DataSplit",
    "GridPoint",
    "FittedModelRecord",
    "GridSearchResult",
    "GridSearchError",
    "EmptyGridError",
    "IncompleteDataError",
    "InsufficientDataError",
    "FitConvergenceError",
    "lambda_sequence",
    "alpha_sequence",
    "build_grid",
    "fit_grid_point",
    "rank_records",
    "grid_search",
    "grid_search_products",
    # Version info
    "__version__",
    "__author__",
]
