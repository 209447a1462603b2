import pandas as pd
import pytest

from cyclestats.api import MONTH_SPEC, group_mean
from cyclestats.core._data_prep import CategoricalSpec, apply_order
from cyclestats.errors import SchemaError


def make_df():
    return pd.DataFrame({
        "year": [2020, 2019, 2019, 2020, 2019, 2019],
        "month": ["Aug", "Jan", "Apr", "Feb", "Jan", "Feb"],
        "Hires": [10.0, 20.0, 30.0, 40.0, 60.0, 80.0],
    })


def test_group_mean_uses_declared_month_order():
    out = group_mean(make_df(), ["month"], "Hires", specs=[MONTH_SPEC])
    assert list(out["month"]) == ["Jan", "Feb", "Apr", "Aug"]
    assert list(out["Hires"]) == pytest.approx([40.0, 60.0, 30.0, 10.0])
    assert list(out["n"]) == [2, 2, 1, 1]


def test_group_mean_uses_existing_categorical_order():
    df = apply_order(make_df(), MONTH_SPEC)
    out = group_mean(df, "month")
    assert list(out["month"]) == ["Jan", "Feb", "Apr", "Aug"]


def test_group_mean_without_order_is_natural():
    out = group_mean(make_df(), ["month"])
    assert list(out["month"]) == ["Apr", "Aug", "Feb", "Jan"]


def test_group_mean_multiple_columns_omits_empty_groups():
    out = group_mean(make_df(), ["year", "month"], specs=[MONTH_SPEC])
    pairs = list(zip(out["year"], out["month"]))
    assert pairs == [(2019, "Jan"), (2019, "Feb"), (2019, "Apr"), (2020, "Feb"), (2020, "Aug")]
    assert (out["n"] > 0).all()


def test_group_mean_reversed_spec():
    spec = CategoricalSpec("year", (2020, 2019))
    out = group_mean(make_df(), ["year"], specs=[spec])
    assert list(out["year"]) == [2020, 2019]


def test_group_mean_non_numeric_value():
    with pytest.raises(SchemaError):
        group_mean(make_df(), ["year"], value="month")
