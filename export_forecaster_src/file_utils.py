# export_forecaster_src/file_utils.py

import csv
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import logging

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def resolve_path(path_str: str, base_dir: Path) -> Path:
    """
    Resolve a path string relative to a base directory if not absolute.

    Examples
    --------
    >>> resolve_path("data/exports.csv", Path("/project"))
    PosixPath('/project/data/exports.csv')
    """
    path = Path(path_str)
    return path if path.is_absolute() else (base_dir / path)


def append_metrics_csv_row(csv_path: Optional[Path],
                           row: Dict[str, Any],
                           header: List[str]) -> None:
    """
    Append a single summary row to CSV, creating header on first write.

    Parameters
    ----------
    csv_path : Optional[Path]
        Path to the CSV file (None to skip writing)
    row : Dict[str, Any]
        Values keyed by column name; unknown keys are ignored
    header : List[str]
        Column names for the CSV
    """
    if csv_path is None:
        return

    try:
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        exists = csv_path.exists()

        with csv_path.open("a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=header, extrasaction="ignore")
            if not exists:
                writer.writeheader()
            writer.writerow(row)

    except OSError as e:
        logger.error("Failed to append metrics to %s: %s", csv_path, e)


def write_ranked_results(results: Mapping[str, Any], csv_path: Path, include_failed: bool = True) -> pd.DataFrame:
    """
    Write every product's ranked grid-search records to one CSV.

    Parameters
    ----------
    results : Mapping[str, GridSearchResult]
        Output of ``grid_search_products``
    csv_path : Path
        Destination CSV (parents are created)
    include_failed : bool, default=True
        Also write failed grid points (rank left empty)

    Returns
    -------
    pd.DataFrame
        The table that was written
    """
    frames = [res.to_frame(include_failed=include_failed) for res in results.values()]
    frames = [f for f in frames if not f.empty]
    table = pd.concat(frames, ignore_index=True, sort=False) if frames else pd.DataFrame()

    ensure_dir(csv_path.parent)
    table.to_csv(csv_path, index=False)
    logger.info("Saved %d ranked records to %s", len(table), csv_path)
    return table
