from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from export_forecaster_src.data_utils import (
    aggregate_export_series,
    infer_products,
    load_covariate_table,
    load_export_records,
)
from export_forecaster_src.grid_search import InsufficientDataError


def _write(path: Path, frame: pd.DataFrame) -> Path:
    frame.to_csv(path, index=False)
    return path


def test_records_are_summed_per_product_and_year(tmp_path: Path):
    csv = _write(tmp_path / "exports.csv", pd.DataFrame({
        "product": ["soy", "soy", "soy", "coffee", "coffee", "soy"],
        "year": [2000, 2000, 2001, 2000, 2001, 2002],
        "volume": [1.0, 2.0, 4.0, 10.0, 11.0, 5.0],
        "port": ["a", "b", "a", "a", "a", "a"],
    }))
    records = load_export_records(csv)
    assert infer_products(records) == ["coffee", "soy"]

    series = aggregate_export_series(records)
    assert list(series) == ["coffee", "soy"]
    assert series["soy"].to_dict() == {2000: 3.0, 2001: 4.0, 2002: 5.0}
    assert series["soy"].name == "soy"


def test_rows_with_missing_values_are_dropped(tmp_path: Path):
    csv = _write(tmp_path / "exports.csv", pd.DataFrame({
        "product": ["soy", "soy", "soy"],
        "year": [2000, 2001, None],
        "volume": [1.0, "n/a", 3.0],
    }))
    records = load_export_records(csv)
    assert len(records) == 1
    assert records["year"].tolist() == [2000]


def test_years_derived_from_date_column(tmp_path: Path):
    csv = _write(tmp_path / "exports.csv", pd.DataFrame({
        "product": ["soy", "soy", "soy"],
        "date": ["2019-03-01", "2019-09-01", "2020-01-15"],
        "volume": [1.0, 2.0, 3.0],
    }))
    series = aggregate_export_series(load_export_records(csv))
    assert series["soy"].to_dict() == {2019: 3.0, 2020: 3.0}


def test_gap_in_years_is_rejected(tmp_path: Path):
    csv = _write(tmp_path / "exports.csv", pd.DataFrame({
        "product": ["soy"] * 3,
        "year": [2000, 2001, 2003],
        "volume": [1.0, 2.0, 3.0],
    }))
    with pytest.raises(InsufficientDataError):
        aggregate_export_series(load_export_records(csv))


def test_unknown_product_is_rejected(tmp_path: Path):
    csv = _write(tmp_path / "exports.csv", pd.DataFrame({"product": ["soy"], "year": [2000], "volume": [1.0]}))
    with pytest.raises(KeyError):
        aggregate_export_series(load_export_records(csv), products=["beef"])


def test_missing_file_or_columns_exit(tmp_path: Path):
    with pytest.raises(SystemExit):
        load_export_records(tmp_path / "missing.csv")
    csv = _write(tmp_path / "exports.csv", pd.DataFrame({"product": ["soy"], "volume": [1.0]}))
    with pytest.raises(SystemExit):
        load_export_records(csv)


def test_covariate_table_is_numeric_and_year_indexed(tmp_path: Path):
    csv = _write(tmp_path / "cov.csv", pd.DataFrame({
        "year": [2002, 2000, 2001],
        "gdp": [3.0, 1.0, 2.0],
        "note": ["c", "a", "b"],
    }))
    table = load_covariate_table(csv)

    assert list(table.columns) == ["gdp"]
    assert list(table.index) == [2000, 2001, 2002]
    assert table.index.name == "year"
    assert np.allclose(table["gdp"], [1.0, 2.0, 3.0])


def test_covariate_table_duplicate_years_exit(tmp_path: Path):
    csv = _write(tmp_path / "cov.csv", pd.DataFrame({"year": [2000, 2000], "gdp": [1.0, 2.0]}))
    with pytest.raises(SystemExit):
        load_covariate_table(csv)
