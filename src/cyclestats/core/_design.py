# src/cyclestats/core/_design.py

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ._data_prep import CategoricalSpec, _require_columns, _resolve_levels

INTERCEPT = "Intercept"


@dataclass(frozen=True)
class Term:
    """
    One model term: a single column (main effect) or several columns whose
    encodings are multiplied together (interaction).
    """
    columns: Tuple[str, ...]

    def __post_init__(self):
        columns = tuple(self.columns)
        if not columns:
            raise ValueError("A term needs at least one column")
        if len(set(columns)) != len(columns):
            raise ValueError(f"Term {columns} repeats a column")
        object.__setattr__(self, "columns", columns)

    @property
    def name(self) -> str:
        return ":".join(self.columns)

    @property
    def key(self) -> frozenset:
        """Order-free identity, so ``a:b`` and ``b:a`` are the same term."""
        return frozenset(self.columns)

    @property
    def is_interaction(self) -> bool:
        return len(self.columns) > 1


def main_effect(column: str) -> Term:
    return Term((column,))


def interaction(*columns: str) -> Term:
    if len(columns) < 2:
        raise ValueError("An interaction needs at least two columns")
    return Term(tuple(columns))


TermLike = Union[str, Term]


def _as_terms(terms: Sequence[TermLike]) -> Tuple[Term, ...]:
    out = tuple(main_effect(t) if isinstance(t, str) else t for t in terms)
    seen = set()
    for t in out:
        if t.key in seen:
            raise ValueError(f"Term '{t.name}' appears more than once")
        seen.add(t.key)
    return out


@dataclass(frozen=True)
class Encoding:
    """
    How each model column is encoded: an ordered level tuple for
    categorical columns (first entry is the reference), ``None`` for
    numeric ones, plus the sample means of the numeric columns.
    """
    levels: Dict[str, Optional[Tuple[Any, ...]]] = field(default_factory=dict)
    means: Dict[str, float] = field(default_factory=dict)

    @property
    def categorical(self) -> List[str]:
        return [c for c, lv in self.levels.items() if lv is not None]

    @property
    def numeric(self) -> List[str]:
        return [c for c, lv in self.levels.items() if lv is None]


def _make_encoding(
    df: pd.DataFrame,
    terms: Sequence[Term],
    specs: Mapping[str, CategoricalSpec],
) -> Encoding:
    """
    Resolve the encoding of every column used by ``terms``.

    Categorical levels keep their declared order but are restricted to the
    levels present in ``df``; an unobserved level would give an all-zero
    dummy column.
    """
    columns = list(dict.fromkeys(c for t in terms for c in t.columns))
    _require_columns(df, columns)
    levels: Dict[str, Optional[Tuple[Any, ...]]] = {}
    means: Dict[str, float] = {}
    for col in columns:
        declared = _resolve_levels(df, col, specs)
        if declared is None:
            levels[col] = None
            means[col] = float(df[col].astype(float).mean())
        else:
            observed = set(pd.unique(df[col]))
            levels[col] = tuple(lvl for lvl in declared if lvl in observed)
    return Encoding(levels=levels, means=means)


def _encode_column(
    series: pd.Series,
    levels: Optional[Tuple[Any, ...]],
) -> Tuple[List[np.ndarray], List[str]]:
    if levels is None:
        return [series.to_numpy(dtype=float)], [str(series.name)]
    codes = pd.Categorical(series, categories=list(levels)).codes
    cols = [(codes == i).astype(float) for i in range(1, len(levels))]
    names = [f"{series.name}[{lvl}]" for lvl in levels[1:]]
    return cols, names


def _encode_term(
    df: pd.DataFrame,
    term: Term,
    encoding: Encoding,
) -> Tuple[List[np.ndarray], List[str]]:
    """Elementwise products across every combination of the constituent encodings."""
    cols: List[np.ndarray] = [np.ones(len(df))]
    names: List[str] = [""]
    for col in term.columns:
        sub_cols, sub_names = _encode_column(df[col], encoding.levels[col])
        cols = [a * b for a, b in itertools.product(cols, sub_cols)]
        names = [
            f"{a}:{b}" if a else b for a, b in itertools.product(names, sub_names)
        ]
    return cols, names


def _build_design(
    df: pd.DataFrame,
    terms: Sequence[Term],
    encoding: Encoding,
) -> pd.DataFrame:
    """
    Design matrix with an intercept column followed by each term's columns,
    in term order.
    """
    data = {INTERCEPT: np.ones(len(df))}
    for term in terms:
        cols, names = _encode_term(df, term, encoding)
        data.update(zip(names, cols))
    return pd.DataFrame(data, index=df.index)


def _reference_grid(encoding: Encoding) -> pd.DataFrame:
    """
    Every combination of categorical levels, with numeric columns held at
    their sample mean.
    """
    cat_cols = encoding.categorical
    combos = list(itertools.product(*(encoding.levels[c] for c in cat_cols)))
    grid = pd.DataFrame(combos, columns=cat_cols)
    for col in cat_cols:
        grid[col] = pd.Categorical(grid[col], categories=list(encoding.levels[col]))
    for col in encoding.numeric:
        grid[col] = encoding.means[col]
    return grid
