from pathlib import Path

import numpy as np
import pandas as pd
import pytest


def _write_inputs(tmp_path: Path):
    rng = np.random.default_rng(11)
    cov_years = np.arange(1990, 2036)
    cov = pd.DataFrame({
        "year": cov_years,
        "gdp": 100.0 + np.cumsum(rng.normal(1.0, 0.5, len(cov_years))),
        "fx": rng.normal(5.0, 1.0, len(cov_years)),
    })
    cov_csv = tmp_path / "covariates.csv"
    cov.to_csv(cov_csv, index=False)

    years = np.arange(2000, 2020)
    gdp = cov.set_index("year").loc[years, "gdp"].to_numpy()
    rows = []
    for name, scale in (("soy", 2.0), ("coffee", 0.5)):
        for yr, g in zip(years, gdp):
            rows.append({"product": name, "year": yr, "volume": scale * g + rng.normal(0, 1.0)})
    exports_csv = tmp_path / "exports.csv"
    pd.DataFrame(rows).to_csv(exports_csv, index=False)
    return exports_csv, cov_csv


def test_main_end_to_end(tmp_path: Path):
    from export_forecaster_src.main import main

    exports_csv, cov_csv = _write_inputs(tmp_path)
    results_csv = tmp_path / "out" / "ranked.csv"
    figures = tmp_path / "figs"

    main([
        "--exports-csv", str(exports_csv),
        "--covariates-csv", str(cov_csv),
        "--results-csv", str(results_csv),
        "--figures-dir", str(figures),
        "--n-lambdas", "3",
        "--n-alphas", "3",
        "--log-level", "WARNING",
    ])

    ranked = pd.read_csv(results_csv)
    assert set(ranked["product"]) == {"soy", "coffee"}
    assert len(ranked) == 2 * 9
    assert [f"fc_{y}" for y in range(2020, 2031)] == [c for c in ranked.columns if c.startswith("fc_")]

    selected = pd.read_csv(results_csv.with_name("ranked_selected.csv"))
    assert sorted(selected["product"]) == ["coffee", "soy"]
    assert (selected["n_positive"] <= selected["n_nonzero"]).all()

    assert (figures / "Forecast_soy.png").exists()
    assert (figures / "Forecast_coffee.png").exists()


def test_rerun_replaces_selection_summary(tmp_path: Path):
    from export_forecaster_src.main import main

    exports_csv, cov_csv = _write_inputs(tmp_path)
    results_csv = tmp_path / "out" / "ranked.csv"
    argv = [
        "--exports-csv", str(exports_csv),
        "--covariates-csv", str(cov_csv),
        "--results-csv", str(results_csv),
        "--no-figures",
        "--lambdas", "1,0.1",
        "--alphas", "0.5",
    ]

    main(argv)
    main(argv)

    selected = pd.read_csv(results_csv.with_name("ranked_selected.csv"))
    assert sorted(selected["product"]) == ["coffee", "soy"]
    assert len(pd.read_csv(results_csv)) == 2 * 2


def test_main_exits_when_forecast_covariates_run_short(tmp_path: Path):
    from export_forecaster_src.main import main

    exports_csv, cov_csv = _write_inputs(tmp_path)
    cov = pd.read_csv(cov_csv)
    cov[cov["year"] <= 2025].to_csv(cov_csv, index=False)

    with pytest.raises(SystemExit) as exc:
        main([
            "--exports-csv", str(exports_csv),
            "--covariates-csv", str(cov_csv),
            "--no-figures",
            "--n-lambdas", "2",
            "--n-alphas", "2",
        ])
    assert exc.value.code == 2


def test_resolve_grid_prefers_explicit_lists():
    import types
    from export_forecaster_src.main import resolve_grid

    args = types.SimpleNamespace(lambdas="1,0.1", alphas="0,1", n_lambdas=None, n_alphas=None)
    grid = resolve_grid(args)
    assert [(p.lambda_, p.alpha) for p in grid] == [(1.0, 0.0), (1.0, 1.0), (0.1, 0.0), (0.1, 1.0)]

    args = types.SimpleNamespace(lambdas=None, alphas=None, n_lambdas=4, n_alphas=2)
    assert len(resolve_grid(args)) == 8
