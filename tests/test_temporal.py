import pandas as pd

from helpers.temporal import year_of


def test_year_of_integer_years():
    out = year_of([2001, 2002, "2003"])
    assert out.tolist() == [2001, 2002, 2003]
    assert str(out.dtype) == "Int64"


def test_year_of_dates_and_mixed_values():
    out = year_of(["2019-03-01", "15/06/2020", 2021, "2022-12-31 08:30"])
    assert out.tolist() == [2019, 2020, 2021, 2022]


def test_year_of_unparseable_is_missing():
    out = year_of(["not a date", "2020-01-01"])
    assert out.isna().tolist() == [True, False]
    assert out.iloc[1] == 2020
