import numpy as np
import pandas as pd
import pytest

from cyclestats.core._data_prep import CategoricalSpec
from cyclestats.core._design import (
    INTERCEPT,
    Term,
    _as_terms,
    _build_design,
    _make_encoding,
    _reference_grid,
    interaction,
    main_effect,
)


def make_df():
    return pd.DataFrame({
        "wfh": [0, 1, 0, 1, 1, 0],
        "temp": [10.0, 12.0, 8.0, 15.0, 11.0, 6.0],
        "month": ["Jan", "Feb", "Mar", "Jan", "Feb", "Mar"],
        "day": ["Mon", "Mon", "Tue", "Tue", "Wed", "Wed"],
    })


MONTHS = {"month": CategoricalSpec("month", ("Jan", "Feb", "Mar", "Apr"))}


def design(df, terms, specs=None):
    terms = _as_terms(terms)
    enc = _make_encoding(df, terms, specs or {})
    return _build_design(df, terms, enc), enc


def test_term_names_and_identity():
    t = interaction("wfh", "month")
    assert t.name == "wfh:month"
    assert t.is_interaction
    assert t.key == interaction("month", "wfh").key
    assert not main_effect("wfh").is_interaction


def test_term_validation():
    with pytest.raises(ValueError):
        interaction("wfh")
    with pytest.raises(ValueError):
        Term(("wfh", "wfh"))
    with pytest.raises(ValueError):
        _as_terms(["wfh", Term(("wfh",))])


def test_numeric_main_effect_used_as_is():
    X, _ = design(make_df(), ["temp"])
    assert list(X.columns) == [INTERCEPT, "temp"]
    assert np.allclose(X["temp"], make_df()["temp"])
    assert np.allclose(X[INTERCEPT], 1.0)


def test_categorical_drops_first_declared_level():
    X, enc = design(make_df(), ["month"], MONTHS)
    # Apr is declared but unobserved, so it gets no column
    assert enc.levels["month"] == ("Jan", "Feb", "Mar")
    assert list(X.columns) == [INTERCEPT, "month[Feb]", "month[Mar]"]
    assert list(X["month[Feb]"]) == [0, 1, 0, 0, 1, 0]


def test_reference_level_follows_spec_not_alphabet():
    spec = {"month": CategoricalSpec("month", ("Mar", "Jan", "Feb"))}
    X, _ = design(make_df(), ["month"], spec)
    assert list(X.columns) == [INTERCEPT, "month[Jan]", "month[Feb]"]


def test_numeric_by_categorical_interaction():
    X, _ = design(make_df(), ["wfh", "month", interaction("wfh", "month")], MONTHS)
    assert list(X.columns) == [
        INTERCEPT, "wfh", "month[Feb]", "month[Mar]", "wfh:month[Feb]", "wfh:month[Mar]",
    ]
    assert np.allclose(X["wfh:month[Feb]"], X["wfh"] * X["month[Feb]"])


def test_categorical_by_categorical_interaction_is_cross_product():
    X, _ = design(make_df(), [interaction("month", "day")], MONTHS)
    inter = [c for c in X.columns if ":" in c]
    # (3 - 1) month dummies x (3 - 1) day dummies
    assert inter == [
        "month[Feb]:day[Tue]", "month[Feb]:day[Wed]",
        "month[Mar]:day[Tue]", "month[Mar]:day[Wed]",
    ]
    expected = ((make_df()["month"] == "Mar") & (make_df()["day"] == "Tue")).astype(float)
    assert np.allclose(X["month[Mar]:day[Tue]"], expected)


def test_design_keeps_row_index():
    df = make_df().set_index(pd.Index([10, 11, 12, 13, 14, 15]))
    X, _ = design(df, ["temp"])
    assert list(X.index) == [10, 11, 12, 13, 14, 15]


def test_reference_grid_crosses_levels_and_holds_means():
    _, enc = design(make_df(), ["temp", "month", "day"], MONTHS)
    grid = _reference_grid(enc)
    assert len(grid) == 9
    assert np.allclose(grid["temp"], make_df()["temp"].mean())
    assert set(grid["month"]) == {"Jan", "Feb", "Mar"}
