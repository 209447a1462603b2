# src/cyclestats/core/_aggregate.py

from typing import Mapping, Sequence

import pandas as pd

from ._data_prep import CategoricalSpec, _require_columns, apply_order
from ..errors import SchemaError


def _group_mean(
    df: pd.DataFrame,
    by: Sequence[str],
    value: str,
    specs: Mapping[str, CategoricalSpec],
) -> pd.DataFrame:
    """
    Mean of ``value`` for every observed combination of ``by``.

    Columns with a spec (or an existing Categorical dtype) sort in their
    declared level order; other columns sort naturally. Combinations with
    no rows are omitted.

    :return: DataFrame with the ``by`` columns, ``value`` (the mean) and ``n``.
    """
    by = list(by)
    if not by:
        raise ValueError("group_mean needs at least one grouping column")
    _require_columns(df, by + [value])
    if not pd.api.types.is_numeric_dtype(df[value].dtype):
        raise SchemaError(f"Column '{value}' must be numeric to average")

    ordered = df[by + [value]]
    for col in by:
        if col in specs:
            ordered = apply_order(ordered, specs[col])

    grouped = ordered.groupby(by, observed=True, sort=True)[value]
    out = grouped.agg(["mean", "size"]).reset_index()
    return out.rename(columns={"mean": value, "size": "n"})
