# src/cyclestats/core/_parametric.py

import logging
import warnings
from typing import Dict, Optional, Sequence, Tuple

import jax
jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp
import jax.scipy.special as spec
import numpy as np
from jax import device_get
from jax.scipy.linalg import solve_triangular

from ..config import RANK_TOL
from ..errors import InsufficientDataError, RankDeficiencyError

logger = logging.getLogger(__name__)


@jax.jit
def _two_sided_p(t: jnp.ndarray, v: jnp.ndarray) -> jnp.ndarray:
    """
    Two-sided Student-t p-value via the regularized incomplete beta:
    P(|T| >= |t|) = I_{v/(v+t²)}(v/2, 1/2).

    :param t: t-statistic(s); ±inf gives 0.
    :param v: degrees of freedom (float or array of floats).
    """
    z = v / (v + t ** 2)
    return spec.betainc(v * 0.5, 0.5, z)


@jax.jit
def _f_sf(F: jnp.ndarray, df1: jnp.ndarray, df2: jnp.ndarray) -> jnp.ndarray:
    """Upper tail P(F_{df1,df2} >= F) via the regularized incomplete beta."""
    z = df2 / (df2 + df1 * F)
    return spec.betainc(df2 * 0.5, df1 * 0.5, z)


# ───────────────────────────────────────────────────────────────────────────────
# Ordinary least squares
# ───────────────────────────────────────────────────────────────────────────────

@jax.jit
def _ols_kernel(
    X: jnp.ndarray,
    y: jnp.ndarray
) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Least squares via reduced QR, never forming or inverting XᵀX.

    :param X: full-rank design matrix (n_samples, n_features).
    :param y: outcome vector (n_samples,).
    :return: (betas, residuals, unscaled covariance (XᵀX)⁻¹ = R⁻¹R⁻ᵀ).
    """
    Q, R = jnp.linalg.qr(X, mode="reduced")
    betas = solve_triangular(R, Q.T @ y, lower=False)
    resid = y - X @ betas
    R_inv = solve_triangular(R, jnp.eye(R.shape[0], dtype=X.dtype), lower=False)
    return betas, resid, R_inv @ R_inv.T


def _matrix_rank(X: jnp.ndarray, tol: float = RANK_TOL) -> int:
    """Numerical rank from singular values relative to the largest one."""
    s = jnp.linalg.svd(X, compute_uv=False)
    if s.size == 0:
        return 0
    return int(jnp.sum(s > tol * s[0]))


def _dependent_columns(X: jnp.ndarray, rank: int, columns: Sequence[str]) -> list:
    """Columns with a non-zero loading on the null space of X."""
    _, _, vt = jnp.linalg.svd(X, full_matrices=True)
    null = np.abs(np.asarray(vt[rank:]))
    if null.size == 0:
        return []
    loaded = (null > 1e-8 * null.max()).any(axis=0)
    return [c for c, hit in zip(columns, loaded) if hit]


def _ols_fit(X, y, columns: Optional[Sequence[str]] = None) -> Dict[str, np.ndarray]:
    """
    Host-side OLS fit with rank and degrees-of-freedom checks.

    :param X: design matrix (n_samples, n_features), intercept included.
    :param y: outcome vector (n_samples,).
    :param columns: design column names, used in error messages.
    :return: dict of NumPy values: betas, ses, t_stats, p_values, resid,
        fitted, rss, df_resid, sigma2, cov.
    :raises RankDeficiencyError: if X has fewer independent columns than columns.
    :raises InsufficientDataError: if no residual degrees of freedom remain.
    """
    X = jnp.asarray(X, dtype=jnp.float64)
    y = jnp.asarray(y, dtype=jnp.float64)
    n, p = X.shape
    rank = _matrix_rank(X)
    if rank < p:
        if columns is None:
            columns = [f"x{i}" for i in range(p)]
        raise RankDeficiencyError(
            f"Design matrix has rank {rank} but {p} columns on {n} rows; "
            f"linearly dependent columns: {_dependent_columns(X, rank, columns)}"
        )
    df_resid = n - rank
    if df_resid < 1:
        raise InsufficientDataError(
            f"{n} rows leave no residual degrees of freedom for {p} parameters"
        )

    betas, resid, xtx_inv = _ols_kernel(X, y)
    rss = jnp.sum(resid ** 2)
    sigma2 = rss / df_resid
    cov = sigma2 * xtx_inv
    ses = jnp.sqrt(jnp.diag(cov))
    t_stats = betas / ses
    p_values = _two_sided_p(jnp.abs(t_stats), jnp.asarray(float(df_resid)))

    out = device_get({
        "betas": betas,
        "ses": ses,
        "t_stats": t_stats,
        "p_values": p_values,
        "resid": resid,
        "fitted": y - resid,
        "cov": cov,
    })
    out = {k: np.asarray(v) for k, v in out.items()}
    out["rss"] = float(rss)
    out["sigma2"] = float(sigma2)
    out["df_resid"] = int(df_resid)
    logger.debug("OLS fit: n=%d, p=%d, rss=%.6g", n, p, out["rss"])
    return out


def _nested_f_test(
    rss_restricted: float,
    df_restricted: int,
    rss_full: float,
    df_full: int,
) -> Tuple[float, float]:
    """
    F-test of the extra terms in a full model over a nested restricted one.

    :return: (F_statistic, upper-tail p_value) with df1 = df_restricted - df_full
        and df2 = df_full.
    """
    df1 = df_restricted - df_full
    df2 = df_full
    # rounding can leave a tiny negative gain; F is never below 0
    gain = max(rss_restricted - rss_full, 0.0)
    # a perfect full fit gives F = inf and p = 0
    with np.errstate(divide="ignore", invalid="ignore"):
        F = np.float64(gain) / df1 / (np.float64(rss_full) / df2)
    p = _f_sf(jnp.asarray(F), jnp.asarray(float(df1)), jnp.asarray(float(df2)))
    return float(F), float(p)


# ───────────────────────────────────────────────────────────────────────────────
# Two-sample and correlation kernels
# ───────────────────────────────────────────────────────────────────────────────

@jax.jit
def _welch_t_test(
    measure: jnp.ndarray,
    labels: jnp.ndarray,
) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Welch's two-sample t-test using mask-based sums.

    :param measure: 1D array of all observations.
    :param labels: 1D integer array, same length, 0 for sample A, 1 for sample B.
    :return: (t_statistic, welch_df, two-sided p_value, mean_A - mean_B, se).
    """
    mask0 = labels == 0
    mask1 = labels == 1

    n0 = jnp.sum(mask0)
    n1 = jnp.sum(mask1)

    mean0 = jnp.sum(measure * mask0) / n0
    mean1 = jnp.sum(measure * mask1) / n1

    # Unbiased variances (ddof=1)
    var0 = jnp.sum(mask0 * (measure - mean0) ** 2) / (n0 - 1)
    var1 = jnp.sum(mask1 * (measure - mean1) ** 2) / (n1 - 1)

    diff = mean0 - mean1

    # Welch SE & Satterthwaite df
    v0n = var0 / n0
    v1n = var1 / n1
    se = jnp.sqrt(v0n + v1n)
    df_num = (v0n + v1n) ** 2
    df_den = (v0n ** 2) / (n0 - 1) + (v1n ** 2) / (n1 - 1)
    df = df_num / df_den

    t_stat = diff / se
    p_val = _two_sided_p(jnp.abs(t_stat), df)
    return t_stat, df, p_val, diff, se


def _welch(a, b) -> Dict[str, float]:
    """
    Host-side Welch test on two samples.

    :raises InsufficientDataError: if either sample has fewer than two values.
    """
    a = np.asarray(a, dtype=float).ravel()
    b = np.asarray(b, dtype=float).ravel()
    if a.size < 2 or b.size < 2:
        raise InsufficientDataError(
            f"Welch test needs at least 2 observations per sample, got {a.size} and {b.size}"
        )
    if a.var(ddof=1) == 0 and b.var(ddof=1) == 0:
        warnings.warn(
            "Both samples have zero variance; the Welch t statistic and p-value are undefined",
            UserWarning,
        )
    measure = jnp.asarray(np.concatenate([a, b]))
    labels = jnp.asarray(np.concatenate([np.zeros(a.size, dtype=int), np.ones(b.size, dtype=int)]))
    t_stat, df, p_val, diff, se = device_get(_welch_t_test(measure, labels))
    return {
        "t_statistic": float(t_stat),
        "df": float(df),
        "p_value": float(p_val),
        "mean_diff": float(diff),
        "se": float(se),
        "n_a": int(a.size),
        "n_b": int(b.size),
        "mean_a": float(a.mean()),
        "mean_b": float(b.mean()),
    }


@jax.jit
def _pearson_kernel(data: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Pearson correlation and two-sided p-value for every column pair.

    :param data: (n_samples, n_columns) array with n_samples >= 3.
    :return: (r, p) square matrices; diagonal r = 1, p = 0.
    """
    n = data.shape[0]
    centered = data - jnp.mean(data, axis=0)
    z = centered / jnp.sqrt(jnp.sum(centered ** 2, axis=0))
    r = jnp.clip(z.T @ z, -1.0, 1.0)
    eye = jnp.eye(r.shape[0], dtype=bool)
    r = jnp.where(eye, 1.0, r)

    df = jnp.asarray(n - 2, dtype=data.dtype)
    t = r * jnp.sqrt(df / (1.0 - r ** 2))
    p = _two_sided_p(jnp.abs(t), df)
    return r, jnp.where(eye, 0.0, p)
