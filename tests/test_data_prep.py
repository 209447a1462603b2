import numpy as np
import pandas as pd
import pytest

from cyclestats.config import HIRES_SCHEMA, MONTH_LEVELS
from cyclestats.core._data_prep import (
    CategoricalSpec,
    _codes,
    _resolve_levels,
    add_period,
    apply_order,
    validate_schema,
)
from cyclestats.errors import InvalidLevelError, SchemaError


def make_table():
    return pd.DataFrame({
        "date": pd.to_datetime(["2019-06-01", "2019-06-02", "2020-06-01", "2020-06-02"]),
        "Hires": [100.0, 120.0, 40.0, 60.0],
        "wfh": [0, 0, 1, 1],
        "day": ["Sat", "Sun", "Mon", "Tue"],
        "month": ["Jun", "Jun", "Jun", "Jun"],
        "year": [2019, 2019, 2020, 2020],
    })


def test_validate_schema_accepts_hires_table():
    validate_schema(make_table(), {**HIRES_SCHEMA, "wfh": "binary"}, non_negative=["Hires"])


def test_validate_schema_missing_column():
    df = make_table().drop(columns="month")
    with pytest.raises(SchemaError, match="month"):
        validate_schema(df, HIRES_SCHEMA)


def test_validate_schema_wrong_kind():
    df = make_table()
    df["date"] = df["date"].dt.strftime("%Y-%m-%d")
    with pytest.raises(SchemaError, match="date"):
        validate_schema(df, HIRES_SCHEMA)


def test_validate_schema_rejects_missing_values():
    df = make_table()
    df.loc[2, "Hires"] = np.nan
    with pytest.raises(SchemaError, match="missing"):
        validate_schema(df, HIRES_SCHEMA)


def test_validate_schema_rejects_negative_hires():
    df = make_table()
    df.loc[0, "Hires"] = -1.0
    with pytest.raises(SchemaError, match="negative"):
        validate_schema(df, HIRES_SCHEMA, non_negative=["Hires"])


def test_validate_schema_rejects_non_binary_indicator():
    df = make_table()
    df.loc[1, "wfh"] = 2
    with pytest.raises(SchemaError, match="wfh"):
        validate_schema(df, {"wfh": "binary"})


def test_schema_error_is_a_value_error():
    with pytest.raises(ValueError):
        validate_schema(pd.DataFrame({"x": [1, 2]}), {"y": "numeric"})


def test_apply_order_sets_declared_categories_without_mutating():
    df = pd.DataFrame({"month": ["Mar", "Jan", "Feb"]})
    out = apply_order(df, CategoricalSpec("month", MONTH_LEVELS))
    assert list(out["month"].cat.categories) == list(MONTH_LEVELS)
    assert out["month"].cat.ordered
    assert out.sort_values("month")["month"].tolist() == ["Jan", "Feb", "Mar"]
    # input untouched
    assert df["month"].dtype == object


def test_apply_order_unknown_level():
    df = pd.DataFrame({"month": ["Jan", "January"]})
    with pytest.raises(InvalidLevelError, match="January"):
        apply_order(df, CategoricalSpec("month", MONTH_LEVELS))


def test_apply_order_missing_column():
    with pytest.raises(SchemaError):
        apply_order(pd.DataFrame({"x": [1]}), CategoricalSpec("month", MONTH_LEVELS))


def test_categorical_spec_rejects_duplicates():
    with pytest.raises(ValueError):
        CategoricalSpec("wfh", (0, 1, 0))


def test_resolve_levels_precedence():
    df = pd.DataFrame({
        "s": ["b", "a", "b"],
        "c": pd.Categorical(["x", "y", "x"], categories=["y", "x"]),
        "n": [1.0, 2.0, 3.0],
    })
    assert _resolve_levels(df, "s", {}) == ("a", "b")
    assert _resolve_levels(df, "s", {"s": CategoricalSpec("s", ("b", "a"))}) == ("b", "a")
    assert _resolve_levels(df, "c", {}) == ("y", "x")
    assert _resolve_levels(df, "n", {}) is None


def test_codes_follow_declared_levels():
    codes = _codes(pd.Series(["Feb", "Jan", "Feb"]), ("Jan", "Feb"))
    assert np.array_equal(np.asarray(codes), [1, 0, 1])


def test_add_period_splits_on_cutoff():
    out = add_period(make_table(), pd.Timestamp("2020-03-23"))
    assert list(out["period"]) == ["pre_covid", "pre_covid", "covid", "covid"]
    assert list(out["period"].cat.categories) == ["pre_covid", "covid"]
    assert "period" not in make_table().columns
