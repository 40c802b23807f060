# export_forecaster_src/data_utils.py

import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import logging

from helpers.temporal import year_of

from .grid_search import InsufficientDataError

logger = logging.getLogger(__name__)


def load_export_records(path: Path,
                        product_column: str = "product",
                        year_column: str = "year",
                        value_column: str = "volume") -> pd.DataFrame:
    """
    Load export records from a CSV with product, year and volume columns.

    Parameters
    ----------
    path : Path
        CSV file; extra columns are ignored
    product_column, year_column, value_column : str
        Names of the identifying and numeric columns

    Returns
    -------
    pd.DataFrame
        Columns ``['product', 'year', 'volume']`` with ``year`` as int and
        ``volume`` as float, sorted by product then year

    Raises
    ------
    SystemExit
        If the file doesn't exist, lacks required columns, or has no valid rows
    """
    if not path.exists():
        raise SystemExit(f"Export CSV not found: {path}")

    logger.info("Loading export records from: %s", path)
    df = pd.read_csv(path)

    # Monthly extracts carry a 'date' column instead of a year
    if year_column not in df.columns and "date" in df.columns:
        logger.info("No '%s' column; deriving years from 'date'", year_column)
        df[year_column] = year_of(df["date"]).to_numpy(dtype=float, na_value=np.nan)

    missing = [c for c in (product_column, year_column, value_column) if c not in df.columns]
    if missing:
        raise SystemExit(f"Export CSV must contain columns {missing}.")

    out = pd.DataFrame({
        "product": df[product_column].astype(str).str.strip(),
        "year": pd.to_numeric(df[year_column], errors="coerce"),
        "volume": pd.to_numeric(df[value_column], errors="coerce"),
    })
    n_raw = len(out)
    out = out.dropna(subset=["year", "volume"])
    out = out[out["product"] != ""]
    if len(out) < n_raw:
        logger.info("Dropped %d export rows with missing product, year or volume", n_raw - len(out))
    if out.empty:
        raise SystemExit("No valid rows found in export CSV after parsing.")

    out["year"] = out["year"].astype(int)
    return out.sort_values(["product", "year"]).reset_index(drop=True)


def load_covariate_table(path: Path, year_column: str = "year") -> pd.DataFrame:
    """
    Load the base covariate table indexed by year.

    Non-numeric columns are dropped. Missing values are kept; the lag step and
    the grid-search validation decide what to do with them.

    Parameters
    ----------
    path : Path
        CSV with a year column and numeric covariate columns
    year_column : str, default="year"
        Name of the year column

    Returns
    -------
    pd.DataFrame
        Numeric covariates indexed by integer year, sorted ascending
    """
    if not path.exists():
        raise SystemExit(f"Covariate CSV not found: {path}")

    logger.info("Loading covariates from: %s", path)
    df = pd.read_csv(path)
    if year_column not in df.columns:
        raise SystemExit(f"Covariate CSV must contain a '{year_column}' column.")

    df[year_column] = pd.to_numeric(df[year_column], errors="coerce")
    df = df.dropna(subset=[year_column]).copy()
    df[year_column] = df[year_column].astype(int)
    if df[year_column].duplicated().any():
        raise SystemExit("Covariate CSV has duplicate years.")

    table = df.set_index(year_column).sort_index()
    numeric = table.apply(pd.to_numeric, errors="coerce")
    dropped = [c for c in numeric.columns if numeric[c].isna().all() and table[c].notna().any()]
    if dropped:
        logger.warning("Dropping non-numeric covariate columns: %s", dropped)
        numeric = numeric.drop(columns=dropped)
    if numeric.shape[1] == 0:
        raise SystemExit("Covariate CSV has no numeric columns.")
    numeric.index.name = "year"
    return numeric


def infer_products(records: pd.DataFrame) -> List[str]:
    """Sorted distinct product identifiers in the export records."""
    return sorted(records["product"].unique().tolist())


def aggregate_export_series(records: pd.DataFrame,
                            products: Optional[Sequence[str]] = None) -> Dict[str, pd.Series]:
    """
    Sum export volumes per product and year into annual series.

    Parameters
    ----------
    records : pd.DataFrame
        Output of :func:`load_export_records`
    products : Sequence[str], optional
        Products to keep, in this order; defaults to every product

    Returns
    -------
    Dict[str, pd.Series]
        Product to annual volume series indexed by consecutive years

    Raises
    ------
    KeyError
        If a requested product has no records
    InsufficientDataError
        If a product's years are not consecutive
    """
    names = list(products) if products else infer_products(records)
    totals = records.groupby(["product", "year"], sort=True)["volume"].sum()

    out: Dict[str, pd.Series] = {}
    for name in names:
        if name not in totals.index.get_level_values(0):
            raise KeyError(f"No export records for product '{name}'")
        s = totals.loc[name].astype(float)
        years = s.index.to_numpy()
        gaps = np.flatnonzero(np.diff(years) != 1)
        if gaps.size:
            first = int(years[gaps[0]])
            raise InsufficientDataError(
                f"{name}: annual series has a gap after {first} (next year {int(years[gaps[0] + 1])})"
            )
        s.index = pd.Index(years.astype(int), name="year")
        s.name = name
        out[name] = s
        logger.info("%s: %d annual observations (%d-%d)", name, len(s), int(years[0]), int(years[-1]))
    return out
