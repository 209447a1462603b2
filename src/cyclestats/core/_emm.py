# src/cyclestats/core/_emm.py

from itertools import combinations
from typing import Any, List, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax import device_get

from ._design import Encoding, Term, _build_design, _reference_grid
from ..errors import SchemaError


def _emm_weights(
    encoding: Encoding,
    terms: Sequence[Term],
    design_columns: Sequence[str],
    factor: str,
) -> Tuple[Tuple[Any, ...], np.ndarray]:
    """
    Linear-combination matrix L (one row per level of ``factor``).

    Row ℓ is the average of the design rows of the reference-grid cells
    with ``factor == ℓ``: other categorical columns are weighted uniformly
    over their levels and numeric columns sit at their sample mean.

    :raises SchemaError: if ``factor`` is not a categorical column of the model.
    """
    if factor not in encoding.levels:
        raise SchemaError(f"Column '{factor}' is not used by the model")
    levels = encoding.levels[factor]
    if levels is None:
        raise SchemaError(
            f"Column '{factor}' is numeric in the model; declare it categorical "
            f"to compute marginal means"
        )
    grid = _reference_grid(encoding)
    X_grid = _build_design(grid, terms, encoding)
    if list(X_grid.columns) != list(design_columns):
        raise SchemaError("Reference grid does not reproduce the model's design columns")

    X = X_grid.to_numpy(dtype=float)
    cells = grid[factor].to_numpy()
    L = np.vstack([X[cells == lvl].mean(axis=0) for lvl in levels])
    return levels, L


@jax.jit
def _linear_combinations(
    L: jnp.ndarray,
    betas: jnp.ndarray,
    cov: jnp.ndarray,
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Estimates L·β and standard errors sqrt(diag(L Σ Lᵀ)).
    """
    est = L @ betas
    var = jnp.einsum("ij,jk,ik->i", L, cov, L)
    return est, jnp.sqrt(jnp.maximum(var, 0.0))


def _emm_estimates(L, betas, cov) -> Tuple[np.ndarray, np.ndarray]:
    est, se = device_get(_linear_combinations(
        jnp.asarray(L, dtype=jnp.float64),
        jnp.asarray(betas, dtype=jnp.float64),
        jnp.asarray(cov, dtype=jnp.float64),
    ))
    return np.asarray(est), np.asarray(se)


def _pair_indices(k: int) -> List[Tuple[int, int]]:
    """Every unordered pair (i, j) with i < j, in declared level order."""
    return list(combinations(range(k), 2))


def _pairwise_weights(L: np.ndarray) -> Tuple[List[Tuple[int, int]], np.ndarray]:
    """
    Contrast rows ``L[j] - L[i]`` for every pair i < j.

    The standard error of each contrast is sqrt(dᵀΣd) on its differenced
    row d, so the covariance between the two means is included.
    """
    pairs = _pair_indices(L.shape[0])
    if not pairs:
        return pairs, np.empty((0, L.shape[1]))
    D = np.vstack([L[j] - L[i] for i, j in pairs])
    return pairs, D
