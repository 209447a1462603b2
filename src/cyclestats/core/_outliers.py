# src/cyclestats/core/_outliers.py

import warnings
from functools import partial
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np
import pandas as pd

from ._data_prep import _codes, _require_columns


@partial(jax.jit, static_argnums=(2,))
def _group_mean_sd(
    values: jnp.ndarray,
    codes: jnp.ndarray,
    n_groups: int,
) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Per-group size, mean and sample standard deviation (ddof=1).

    :param values: 1D observations.
    :param codes: 1D integer group codes in {0, …, n_groups-1}.
    :param n_groups: number of groups (static).
    :return: (counts, means, sds); sd is NaN for groups with fewer than two rows.
    """
    counts = jax.ops.segment_sum(jnp.ones_like(values), codes, num_segments=n_groups)
    sums = jax.ops.segment_sum(values, codes, num_segments=n_groups)
    means = sums / counts
    sq_dev = (values - means[codes]) ** 2
    ss = jax.ops.segment_sum(sq_dev, codes, num_segments=n_groups)
    var = jnp.where(counts > 1, ss / jnp.maximum(counts - 1, 1.0), jnp.nan)
    return counts, means, jnp.sqrt(var)


@jax.jit
def _within_bounds(
    values: jnp.ndarray,
    codes: jnp.ndarray,
    means: jnp.ndarray,
    sds: jnp.ndarray,
    width: float,
) -> jnp.ndarray:
    """
    Row mask for mean - width·sd <= value <= mean + width·sd of the row's
    group. Rows whose group sd is undefined are kept.
    """
    m = means[codes]
    s = sds[codes]
    inside = (values >= m - width * s) & (values <= m + width * s)
    return jnp.isnan(s) | inside


def _filter_by_group(
    df: pd.DataFrame,
    group_col: str,
    value_col: str,
    width: float,
) -> pd.DataFrame:
    """
    Keep rows within ``width`` sample sd of their own group's mean.

    Group statistics are computed on ``df`` itself, so each call is
    independent of any earlier filtering.
    """
    _require_columns(df, [group_col, value_col])
    if df.empty:
        return df.copy()
    levels = tuple(pd.unique(df[group_col]))
    codes = _codes(df[group_col], levels)
    values = jnp.asarray(df[value_col].to_numpy(dtype=float))

    counts, means, sds = _group_mean_sd(values, codes, len(levels))
    singletons = [lvl for lvl, n in zip(levels, np.asarray(counts)) if n < 2]
    if singletons:
        warnings.warn(
            f"Group(s) {singletons} in '{group_col}' have fewer than two rows; "
            f"their rows are kept without filtering",
            UserWarning,
        )
    keep = np.asarray(_within_bounds(values, codes, means, sds, width))
    return df.loc[keep].copy()
