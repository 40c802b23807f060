"""Input validation for the export forecaster.

This package checks product series and covariate matrices before fitting:
- Series contiguity and minimum history
- Covariate density and forecast-horizon coverage
- Duplicate-series detection via SHA-256 fingerprints
"""

from .pipeline import (
    ValidationSeverity,
    ValidationIssue,
    ValidationResult,
    DataValidationError,
    ComprehensiveValidator,
    series_fingerprint,
    run_validation_pipeline,
    create_validation_report
)

__all__ = [
    'ValidationSeverity',
    'ValidationIssue',
    'ValidationResult',
    'DataValidationError',
    'ComprehensiveValidator',
    'series_fingerprint',
    'run_validation_pipeline',
    'create_validation_report'
]

__version__ = '1.0.0'
