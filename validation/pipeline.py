"""Validation pipeline for export forecaster inputs.

This module checks the per-product series and the lagged covariate matrix
before a grid search and reports every problem at once, instead of stopping
at the first fatal error the way the grid search does.

Features:
- Structured validation result reporting by severity
- Series contiguity and minimum-history checks
- Covariate density and forecast-horizon coverage checks
- Duplicate-series detection with SHA-256 fingerprints
"""

import hashlib
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import pandas as pd
import numpy as np

logger = logging.getLogger(__name__)


class ValidationSeverity(Enum):
    """Validation issue severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ValidationIssue:
    """Individual validation issue."""
    severity: ValidationSeverity
    message: str
    component: str
    details: Optional[Dict[str, Any]] = None


@dataclass
class ValidationResult:
    """Complete validation result with all issues and metrics."""
    is_valid: bool
    issues: List[ValidationIssue]
    metrics: Dict[str, Any]

    @property
    def has_errors(self) -> bool:
        """Check if result has any errors or critical issues."""
        return any(issue.severity in [ValidationSeverity.ERROR, ValidationSeverity.CRITICAL]
                   for issue in self.issues)

    @property
    def has_warnings(self) -> bool:
        """Check if result has any warnings."""
        return any(issue.severity == ValidationSeverity.WARNING for issue in self.issues)

    def get_issues_by_severity(self, severity: ValidationSeverity) -> List[ValidationIssue]:
        """Get all issues of a specific severity."""
        return [issue for issue in self.issues if issue.severity == severity]

    def summary(self) -> str:
        """Get a summary string of the validation result."""
        total_issues = len(self.issues)
        errors = len(self.get_issues_by_severity(ValidationSeverity.ERROR))
        criticals = len(self.get_issues_by_severity(ValidationSeverity.CRITICAL))
        warnings = len(self.get_issues_by_severity(ValidationSeverity.WARNING))

        status = "PASS" if self.is_valid and not self.has_errors else "FAIL"
        return f"Validation {status}: {total_issues} issues ({criticals} critical, {errors} error, {warnings} warning)"


class DataValidationError(Exception):
    """Exception raised for critical data validation failures."""

    def __init__(self, message: str, validation_result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.validation_result = validation_result


def series_fingerprint(data: pd.Series) -> str:
    """SHA-256 of a series' values and index, truncated to 16 hex characters."""
    values = np.ascontiguousarray(data.to_numpy(dtype=float)).tobytes()
    index = str(list(data.index)).encode("utf-8")
    return hashlib.sha256(values + index).hexdigest()[:16]


class ComprehensiveValidator:
    """Validation orchestrator for product series and covariates."""

    def __init__(self, config_manager=None, min_fit_rows: int = 5):
        """Initialize validator with optional configuration."""
        self.config_manager = config_manager
        self.min_fit_rows = min_fit_rows
        self.issues: List[ValidationIssue] = []
        self.metrics: Dict[str, Any] = {}

    def _issue(self, severity: ValidationSeverity, message: str, component: str, **details) -> None:
        self.issues.append(ValidationIssue(severity, message, component, details or None))

    def validate_products(self, series_by_product: Dict[str, pd.Series],
                          covariates: pd.DataFrame,
                          validation_window: int,
                          forecast_horizon: int) -> ValidationResult:
        """Validate every product series against the lagged covariate matrix.

        Parameters
        ----------
        series_by_product : dict
            Product to annual series indexed by integer year
        covariates : pd.DataFrame
            Lagged covariate matrix indexed by integer year
        validation_window : int
            Number of held-out years
        forecast_horizon : int
            Number of forecast years required after each series

        Returns
        -------
        ValidationResult
            Issues and metrics across all products
        """
        logger.info("Starting validation of %d product series", len(series_by_product))
        self.issues.clear()
        self.metrics.clear()

        if self.config_manager:
            self.min_fit_rows = int(self.config_manager.get("validation.min_fit_rows", self.min_fit_rows))

        self._validate_basic_properties(series_by_product, validation_window)
        self._validate_temporal_properties(series_by_product)
        self._validate_covariates(series_by_product, covariates, forecast_horizon)
        self._validate_uniqueness(series_by_product)

        is_valid = not any(issue.severity in [ValidationSeverity.ERROR, ValidationSeverity.CRITICAL]
                           for issue in self.issues)
        result = ValidationResult(is_valid=is_valid, issues=self.issues.copy(), metrics=self.metrics.copy())
        logger.info("Validation completed: %s", result.summary())
        return result

    def _validate_basic_properties(self, series_by_product: Dict[str, pd.Series], validation_window: int) -> None:
        logger.debug("Validating basic series properties")

        if not series_by_product:
            self._issue(ValidationSeverity.CRITICAL, "No product series supplied", "basic_properties")
            return

        for name, data in series_by_product.items():
            if data is None or data.empty:
                self._issue(ValidationSeverity.ERROR, f"Series '{name}' is empty", "basic_properties")
                continue

            n_missing = int(data.isna().sum())
            if n_missing:
                self._issue(ValidationSeverity.ERROR,
                            f"Series '{name}' has {n_missing} missing values",
                            "basic_properties", missing=n_missing)

            n_fit = len(data) - validation_window
            if n_fit <= 0:
                self._issue(ValidationSeverity.ERROR,
                            f"Series '{name}' has {len(data)} observations; validation window {validation_window} leaves none for fitting",
                            "basic_properties", observations=len(data), validation_window=validation_window)
            elif n_fit < self.min_fit_rows:
                self._issue(ValidationSeverity.WARNING,
                            f"Series '{name}' leaves only {n_fit} fitting rows (recommended: {self.min_fit_rows})",
                            "basic_properties", fit_rows=n_fit, minimum=self.min_fit_rows)

            self.metrics[f"{name}_observations"] = len(data)

    def _validate_temporal_properties(self, series_by_product: Dict[str, pd.Series]) -> None:
        logger.debug("Validating temporal properties")

        for name, data in series_by_product.items():
            if data is None or data.empty:
                continue
            years = np.asarray(data.index)
            if not np.issubdtype(years.dtype, np.integer):
                self._issue(ValidationSeverity.ERROR,
                            f"Series '{name}' is not indexed by integer years",
                            "temporal_properties")
                continue
            steps = np.diff(years)
            if np.any(steps != 1):
                self._issue(ValidationSeverity.ERROR,
                            f"Series '{name}' years are not consecutive",
                            "temporal_properties", gaps=int(np.sum(steps != 1)))
            self.metrics[f"{name}_span"] = f"{int(years.min())}-{int(years.max())}"

    def _validate_covariates(self, series_by_product: Dict[str, pd.Series],
                             covariates: pd.DataFrame, forecast_horizon: int) -> None:
        logger.debug("Validating covariate coverage")

        if covariates is None or covariates.empty:
            self._issue(ValidationSeverity.CRITICAL, "Covariate matrix is empty", "covariates")
            return

        n_incomplete = int((~np.isfinite(covariates.to_numpy(dtype=float))).any(axis=1).sum())
        if n_incomplete:
            self._issue(ValidationSeverity.ERROR,
                        f"Covariate matrix has {n_incomplete} rows with missing values",
                        "covariates", incomplete_rows=n_incomplete)
        self.metrics["covariate_columns"] = covariates.shape[1]
        self.metrics["covariate_span"] = f"{int(covariates.index.min())}-{int(covariates.index.max())}"

        for name, data in series_by_product.items():
            if data is None or data.empty:
                continue
            missing = data.index.difference(covariates.index)
            if len(missing):
                self._issue(ValidationSeverity.ERROR,
                            f"Series '{name}' has {len(missing)} years without covariates",
                            "covariates", first_missing=int(missing[0]))
            last = int(data.index.max())
            wanted = range(last + 1, last + 1 + forecast_horizon)
            covered = sum(1 for y in wanted if y in covariates.index)
            if covered < forecast_horizon:
                self._issue(ValidationSeverity.ERROR,
                            f"Series '{name}': covariates cover {covered} of {forecast_horizon} forecast years",
                            "covariates", covered=covered, horizon=forecast_horizon)

    def _validate_uniqueness(self, series_by_product: Dict[str, pd.Series]) -> None:
        logger.debug("Validating series uniqueness")

        seen: Dict[str, str] = {}
        for name, data in series_by_product.items():
            if data is None or data.empty:
                continue
            fp = series_fingerprint(data)
            if fp in seen:
                self._issue(ValidationSeverity.WARNING,
                            f"Series '{name}' is identical to '{seen[fp]}'",
                            "uniqueness", fingerprint=fp)
            else:
                seen[fp] = name
            self.metrics[f"{name}_fingerprint"] = fp


def run_validation_pipeline(series_by_product: Dict[str, pd.Series],
                            covariates: pd.DataFrame,
                            validation_window: int,
                            forecast_horizon: int,
                            config_manager=None,
                            raise_on_error: bool = True) -> ValidationResult:
    """Run the validation pipeline and log each issue.

    Returns
    -------
    ValidationResult
        Comprehensive validation result

    Raises
    ------
    DataValidationError
        If raise_on_error=True and validation fails
    """
    validator = ComprehensiveValidator(config_manager)
    result = validator.validate_products(series_by_product, covariates, validation_window, forecast_horizon)

    for issue in result.issues:
        if issue.severity == ValidationSeverity.CRITICAL:
            logger.critical("CRITICAL [%s]: %s", issue.component, issue.message)
        elif issue.severity == ValidationSeverity.ERROR:
            logger.error("ERROR [%s]: %s", issue.component, issue.message)
        elif issue.severity == ValidationSeverity.WARNING:
            logger.warning("WARNING [%s]: %s", issue.component, issue.message)
        else:
            logger.info("INFO [%s]: %s", issue.component, issue.message)

    if raise_on_error and result.has_errors:
        raise DataValidationError(f"Data validation failed: {result.summary()}", result)

    return result


def create_validation_report(result: ValidationResult, output_path: Optional[Path] = None) -> str:
    """Create a plain-text validation report, optionally saving it."""
    lines = []
    lines.append("=" * 60)
    lines.append("Export Forecaster Input Validation Report")
    lines.append("=" * 60)
    lines.append(f"Overall Status: {'PASS' if result.is_valid and not result.has_errors else 'FAIL'}")
    lines.append(f"Total Issues: {len(result.issues)}")
    lines.append("")

    for severity in ValidationSeverity:
        issues = result.get_issues_by_severity(severity)
        if issues:
            lines.append(f"{severity.value.upper()}: {len(issues)} issues")

    lines.append("")
    lines.append("Validation Metrics:")
    for key, value in result.metrics.items():
        lines.append(f"  {key}: {value}")

    lines.append("")
    lines.append("Detailed Issues:")
    lines.append("-" * 40)
    for issue in result.issues:
        lines.append(f"[{issue.severity.value.upper()}] {issue.component}: {issue.message}")
        if issue.details:
            for key, value in issue.details.items():
                lines.append(f"    {key}: {value}")
        lines.append("")

    report_content = "\n".join(lines)

    if output_path:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(report_content, encoding="utf-8")
            logger.info("Validation report saved to: %s", output_path)
        except OSError as e:
            logger.error("Failed to save validation report: %s", e)

    return report_content
