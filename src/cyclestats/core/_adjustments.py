# src/cyclestats/core/_adjustments.py

from typing import Literal

import jax
import jax.numpy as jnp

PAdjustMethod = Literal["none", "bonferroni", "holm", "fdr"]
ContrastAdjust = Literal["none", "bonferroni", "holm", "fdr", "tukey"]


@jax.jit
def bonferroni(p_values: jnp.ndarray) -> jnp.ndarray:
    """Bonferroni: p_adj = min(p · m, 1)."""
    return jnp.minimum(p_values * p_values.size, 1.0)


@jax.jit
def holm(p_values: jnp.ndarray) -> jnp.ndarray:
    """
    Holm step-down correction.

    :param p_values: 1D array of raw p-values.
    :return: adjusted p-values in the input order, non-decreasing in rank, ≤ 1.
    """
    m = p_values.size
    order = jnp.argsort(p_values)
    # ranks 1..m get multipliers m..1
    scaled = jnp.minimum(p_values[order] * (m - jnp.arange(m)), 1.0)
    stepped = jax.lax.cummax(scaled)
    return stepped[jnp.argsort(order)]


@jax.jit
def fdr_bh(p_values: jnp.ndarray) -> jnp.ndarray:
    """
    Benjamini–Hochberg false-discovery-rate correction.

    :param p_values: 1D array of raw p-values.
    :return: q-values in the input order, ≤ 1.
    """
    m = p_values.size
    order = jnp.argsort(p_values)
    q = p_values[order] * m / jnp.arange(1, m + 1)
    # running minimum from the largest p downwards
    q = jax.lax.cummin(q, reverse=True)
    return jnp.minimum(q, 1.0)[jnp.argsort(order)]


def adjust_pvalues(
    p_values: jnp.ndarray,
    method: PAdjustMethod = "none"
) -> jnp.ndarray:
    """
    Dispatch to a multiple-comparison correction.

    :param p_values: 1D array of raw p-values.
    :param method: one of 'none', 'bonferroni', 'holm', 'fdr'.
    :raises ValueError: if method is unrecognized.
    """
    p_values = jnp.asarray(p_values, dtype=jnp.float64)
    if p_values.size == 0 or method == "none":
        return p_values
    if method == "bonferroni":
        return bonferroni(p_values)
    if method == "holm":
        return holm(p_values)
    if method == "fdr":
        return fdr_bh(p_values)
    raise ValueError(f"Unknown p-value adjustment method: {method}")


def interval_alpha(alpha: float, n_comparisons: int, method: ContrastAdjust) -> float:
    """
    Per-interval alpha for a family of ``n_comparisons`` intervals.

    Step-wise methods (Holm, FDR) have no interval counterpart; their
    intervals fall back to Bonferroni. Tukey intervals use the studentized
    range and are handled by the caller.
    """
    if method == "none" or n_comparisons <= 1:
        return alpha
    if method in ("bonferroni", "holm", "fdr"):
        return alpha / n_comparisons
    if method == "tukey":
        return alpha
    raise ValueError(f"Unknown contrast adjustment method: {method}")
