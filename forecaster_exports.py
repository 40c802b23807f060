#!/usr/bin/env python3
"""
Elastic-Net forecasting of annual agricultural export volumes.

Usage
-----
    python forecaster_exports.py --help
    python forecaster_exports.py --exports-csv data/exports.csv --covariates-csv data/covariates.csv
    python forecaster_exports.py --products soy,coffee --scoring mean_residual --arima

Package Structure
-----------------
The code lives in export_forecaster_src/; main.py holds the CLI and workflow.
"""

if __name__ == "__main__":
    from export_forecaster_src.main import main
    main()
