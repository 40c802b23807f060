from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from validation import (
    ComprehensiveValidator,
    DataValidationError,
    ValidationSeverity,
    create_validation_report,
    run_validation_pipeline,
    series_fingerprint,
)


def _covariates(start=1995, end=2035):
    years = np.arange(start, end + 1)
    return pd.DataFrame({"gdp": np.linspace(0.0, 1.0, len(years))}, index=years)


def _series(name, start=2000, n=15, offset=0.0):
    return pd.Series(np.arange(n, dtype=float) + offset, index=np.arange(start, start + n), name=name)


def test_valid_products_pass():
    series = {"soy": _series("soy"), "beef": _series("beef", offset=1.0)}
    result = ComprehensiveValidator().validate_products(series, _covariates(), 5, 11)

    assert result.is_valid
    assert not result.has_errors
    assert result.metrics["soy_observations"] == 15
    assert result.metrics["soy_span"] == "2000-2014"
    assert result.metrics["soy_fingerprint"] != result.metrics["beef_fingerprint"]


def test_gaps_and_short_coverage_are_errors():
    gappy = pd.Series([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0], index=[2000, 2001, 2002, 2004, 2005, 2006, 2007], name="soy")
    late = _series("beef", start=2020, n=10)
    result = ComprehensiveValidator().validate_products({"soy": gappy, "beef": late}, _covariates(), 5, 11)

    assert not result.is_valid
    components = {i.component for i in result.get_issues_by_severity(ValidationSeverity.ERROR)}
    assert {"temporal_properties", "covariates"} <= components


def test_short_history_warns_and_exhausted_history_errors():
    short = _series("soy", n=8)
    result = ComprehensiveValidator(min_fit_rows=5).validate_products({"soy": short}, _covariates(), 5, 11)
    assert result.is_valid
    assert result.has_warnings

    tiny = _series("soy", n=5)
    result = ComprehensiveValidator().validate_products({"soy": tiny}, _covariates(), 5, 11)
    assert result.has_errors


def test_duplicate_series_warns():
    s = _series("soy")
    result = ComprehensiveValidator().validate_products({"soy": s, "soy_copy": s.rename("soy_copy")},
                                                        _covariates(), 5, 11)
    assert result.is_valid
    assert any(i.component == "uniqueness" for i in result.issues)


def test_missing_covariates_are_errors():
    cov = _covariates()
    cov.loc[2003, "gdp"] = np.nan
    result = ComprehensiveValidator().validate_products({"soy": _series("soy")}, cov, 5, 11)
    assert result.has_errors


def test_pipeline_raises_on_errors():
    with pytest.raises(DataValidationError) as exc:
        run_validation_pipeline({"soy": _series("soy", start=2020, n=10)}, _covariates(), 5, 11)
    assert exc.value.validation_result is not None

    result = run_validation_pipeline({"soy": _series("soy", start=2020, n=10)}, _covariates(), 5, 11,
                                     raise_on_error=False)
    assert not result.is_valid


def test_fingerprint_depends_on_values_and_index():
    s = _series("soy")
    assert series_fingerprint(s) == series_fingerprint(s.copy())
    assert series_fingerprint(s) != series_fingerprint(s + 1.0)
    shifted = s.copy()
    shifted.index = shifted.index + 1
    assert series_fingerprint(s) != series_fingerprint(shifted)


def test_report_written_to_disk(tmp_path: Path):
    result = ComprehensiveValidator().validate_products({"soy": _series("soy")}, _covariates(), 5, 11)
    out = tmp_path / "reports" / "validation.txt"
    text = create_validation_report(result, out)

    assert out.exists()
    assert "Overall Status: PASS" in text
    assert out.read_text(encoding="utf-8") == text
