# -*- coding: utf-8 -*-
"""
Temporal utilities for annual alignment.

Functions
---------
- year_of(values): Calendar year of each date-like value, as integers. Lets
  export records keyed by month or by full date be aggregated by year.
"""

from __future__ import annotations

import pandas as pd


def year_of(values) -> pd.Series:
    """
    Calendar year of each date-like value.

    Plain integers (or integer-like strings) between 1000 and 9999 are taken
    as years directly; anything else is parsed as a date. Unparseable values
    become missing.

    Parameters
    ----------
    values : array-like
        Years, dates or date strings

    Returns
    -------
    pd.Series
        Nullable integer years ("Int64")
    """
    s = pd.Series(values).reset_index(drop=True)
    numeric = pd.to_numeric(s, errors="coerce")
    is_year = numeric.notna() & (numeric == numeric.round()) & numeric.between(1000, 9999)
    if is_year.all():
        return numeric.astype("Int64")

    parsed = pd.to_datetime(s.where(~is_year).astype("string"), errors="coerce", format="mixed")
    out = parsed.dt.year.astype("Int64")
    out[is_year] = numeric[is_year].astype("Int64")
    return out
