# src/cyclestats/core/_data_prep.py

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import jax.numpy as jnp

from ..config import ColumnKind, PERIOD_LEVELS
from ..errors import InvalidLevelError, SchemaError


@dataclass(frozen=True)
class CategoricalSpec:
    """
    Explicit level ordering for one categorical column.

    ``levels[0]`` is the reference level dropped when the column is dummy
    encoded in a design matrix.
    """
    name: str
    levels: Tuple[Any, ...]

    def __post_init__(self):
        levels = tuple(self.levels)
        if not levels:
            raise ValueError(f"CategoricalSpec '{self.name}' needs at least one level")
        if len(set(levels)) != len(levels):
            raise ValueError(f"CategoricalSpec '{self.name}' has duplicate levels")
        object.__setattr__(self, "levels", levels)


SpecsArg = Union[Sequence[CategoricalSpec], Mapping[str, CategoricalSpec], None]


def _spec_map(specs: SpecsArg) -> Dict[str, CategoricalSpec]:
    if specs is None:
        return {}
    if isinstance(specs, Mapping):
        return dict(specs)
    return {s.name: s for s in specs}


def _require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise SchemaError(f"Column(s) {missing} not found")


def _is_categorical(series: pd.Series) -> bool:
    return isinstance(series.dtype, pd.CategoricalDtype) or (
        pd.api.types.is_object_dtype(series.dtype)
        or pd.api.types.is_string_dtype(series.dtype)
    )


def _check_kind(series: pd.Series, kind: ColumnKind) -> bool:
    dtype = series.dtype
    if kind == "numeric":
        return pd.api.types.is_numeric_dtype(dtype) and not _is_categorical(series)
    if kind == "integer":
        return pd.api.types.is_integer_dtype(dtype)
    if kind == "categorical":
        return _is_categorical(series)
    if kind == "date":
        return pd.api.types.is_datetime64_any_dtype(dtype)
    if kind == "binary":
        return (
            pd.api.types.is_numeric_dtype(dtype)
            and not _is_categorical(series)
            and bool(series.isin([0, 1]).all())
        )
    raise ValueError(f"Unknown column kind: {kind}")


def validate_schema(
    df: pd.DataFrame,
    schema: Mapping[str, ColumnKind],
    non_negative: Sequence[str] = (),
) -> None:
    """
    Check that every column in ``schema`` exists, has the declared kind and
    holds no missing values.

    :param df: input table.
    :param schema: mapping column name → one of
        "numeric", "integer", "categorical", "date", "binary".
    :param non_negative: numeric columns that must not hold negative values.
    :raises SchemaError: on the first violated column.
    """
    _require_columns(df, schema.keys())
    for col, kind in schema.items():
        series = df[col]
        if series.isna().any():
            raise SchemaError(f"Column '{col}' contains missing values")
        if not _check_kind(series, kind):
            raise SchemaError(
                f"Column '{col}' has dtype {series.dtype}, expected {kind}"
            )
    for col in non_negative:
        if (df[col] < 0).any():
            raise SchemaError(f"Column '{col}' contains negative values")


def _check_levels(series: pd.Series, spec: CategoricalSpec) -> None:
    allowed = set(spec.levels)
    unknown = [v for v in pd.unique(series) if v not in allowed]
    if unknown:
        raise InvalidLevelError(
            f"Column '{spec.name}' has value(s) {unknown} outside the declared "
            f"levels {list(spec.levels)}"
        )


def apply_order(df: pd.DataFrame, spec: CategoricalSpec) -> pd.DataFrame:
    """
    Return a copy of ``df`` in which ``spec.name`` is an ordered Categorical
    with ``spec.levels``.

    :raises SchemaError: if the column is missing.
    :raises InvalidLevelError: if an observed value is not a declared level.
    """
    _require_columns(df, [spec.name])
    _check_levels(df[spec.name], spec)
    out = df.copy()
    out[spec.name] = pd.Categorical(
        df[spec.name],
        categories=list(spec.levels),
        ordered=True,
    )
    return out


def apply_orders(df: pd.DataFrame, specs: SpecsArg) -> pd.DataFrame:
    out = df.copy()
    for spec in _spec_map(specs).values():
        out = apply_order(out, spec)
    return out


def _resolve_levels(
    df: pd.DataFrame,
    column: str,
    specs: Mapping[str, CategoricalSpec],
) -> Optional[Tuple[Any, ...]]:
    """
    Level ordering of ``column``, or ``None`` when it is numeric.

    Precedence: explicit spec, existing Categorical categories, then
    sorted observed values for plain string columns.
    """
    series = df[column]
    if column in specs:
        _check_levels(series, specs[column])
        return specs[column].levels
    if isinstance(series.dtype, pd.CategoricalDtype):
        return tuple(series.cat.categories)
    if _is_categorical(series):
        return tuple(sorted(pd.unique(series)))
    if pd.api.types.is_bool_dtype(series.dtype) or pd.api.types.is_numeric_dtype(series.dtype):
        return None
    raise SchemaError(f"Column '{column}' with dtype {series.dtype} cannot be used as a term")


def _codes(series: pd.Series, levels: Sequence[Any]) -> jnp.ndarray:
    """Integer codes of ``series`` against ``levels`` as a JAX array."""
    cat = pd.Categorical(series, categories=list(levels))
    return jnp.asarray(cat.codes.astype(np.int32))


def add_period(
    df: pd.DataFrame,
    cutoff: pd.Timestamp,
    column: str = "period",
    date_column: str = "date",
    labels: Tuple[str, str] = PERIOD_LEVELS,
) -> pd.DataFrame:
    """
    Add a two-level ordered period flag: ``labels[0]`` before ``cutoff``,
    ``labels[1]`` on or after it.
    """
    validate_schema(df, {date_column: "date"})
    out = df.copy()
    before = (df[date_column] < pd.Timestamp(cutoff)).to_numpy()
    out[column] = pd.Categorical(
        np.where(before, labels[0], labels[1]),
        categories=list(labels),
        ordered=True,
    )
    return out
