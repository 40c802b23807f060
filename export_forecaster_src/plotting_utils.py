# export_forecaster_src/plotting_utils.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from pathlib import Path
from typing import Optional
import logging

from .file_utils import ensure_dir

logger = logging.getLogger(__name__)


def plot_selected_forecast(history: pd.Series,
                           forecast: pd.Series,
                           out_path: Path,
                           validation_window: int = 0,
                           arima_forecast: Optional[pd.DataFrame] = None,
                           title: Optional[str] = None) -> None:
    """
    Save a static chart of a product's history and selected forecast.

    Parameters
    ----------
    history : pd.Series
        Observed annual series indexed by year
    forecast : pd.Series
        Selected Elastic-Net forecast indexed by year
    out_path : Path
        PNG path (parents are created if missing)
    validation_window : int, default=0
        Shade the last ``validation_window`` observed years
    arima_forecast : pd.DataFrame, optional
        ARIMA benchmark with a 'forecast' column and optional 'lo_95'/'hi_95'
    title : str, optional
        Plot title; defaults to the series name
    """
    ensure_dir(out_path.parent)
    fig, ax = plt.subplots(figsize=(9, 4.5))

    ax.plot(history.index, history.values, color="black", linewidth=1.5, label="observed")
    ax.plot(forecast.index, forecast.values, color="tab:red", linestyle="--", marker="o",
            markersize=3, label="elastic net")

    if validation_window > 0 and len(history) > validation_window:
        start = history.index[-validation_window]
        ax.axvspan(start - 0.5, history.index[-1] + 0.5, color="tab:gray", alpha=0.15, label="validation")

    if arima_forecast is not None and not arima_forecast.empty:
        ax.plot(arima_forecast.index, arima_forecast["forecast"], color="tab:blue", linestyle=":",
                label="ARIMA")
        if {"lo_95", "hi_95"}.issubset(arima_forecast.columns):
            ax.fill_between(arima_forecast.index, arima_forecast["lo_95"], arima_forecast["hi_95"],
                            color="tab:blue", alpha=0.1)

    ax.set_xlabel("Year")
    ax.set_ylabel("Export volume")
    ax.set_title(title or str(history.name))
    ax.legend()
    plt.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    logger.info("Saved forecast chart: %s", out_path)
