# src/cyclestats/core/_intervals.py

from typing import Tuple

import numpy as np
from scipy.stats import studentized_range
from scipy.stats import t as _t_dist  # for analytic t-quantiles


def t_critical(alpha: float, df: float) -> float:
    """Two-sided Student-t critical value t(1 - alpha/2, df)."""
    return float(_t_dist.ppf(1.0 - alpha / 2.0, df))


def analytic_ci(
    est,
    se,
    df: float,
    alpha: float = 0.05,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two-sided Student-t interval est ± t(1 - alpha/2, df)·se.
    Works elementwise on arrays of estimates and standard errors.
    """
    z = t_critical(alpha, df)
    est = np.asarray(est, dtype=float)
    se = np.asarray(se, dtype=float)
    return est - z * se, est + z * se


def tukey_critical(alpha: float, k: int, df: float) -> float:
    """Tukey HSD critical value q(1 - alpha; k, df) / sqrt(2) on the t scale."""
    return float(studentized_range.ppf(1.0 - alpha, k, df) / np.sqrt(2.0))


def tukey_p_values(t_stats, k: int, df: float) -> np.ndarray:
    """Tukey-adjusted p-values for pairwise t statistics among ``k`` means."""
    q = np.abs(np.asarray(t_stats, dtype=float)) * np.sqrt(2.0)
    return np.asarray(studentized_range.sf(q, k, df), dtype=float)
