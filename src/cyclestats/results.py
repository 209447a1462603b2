# src/cyclestats/results.py

from __future__ import annotations
import math
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .config import DEFAULT_ALPHA
from .core._data_prep import CategoricalSpec, _check_levels, _require_columns
from .core._design import Encoding, Term, _build_design
from .core._intervals import analytic_ci


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Ordinary-least-squares fit of ``response`` on an intercept plus ``terms``.

    Produced by :func:`cyclestats.api.fit` and never mutated afterwards.
    ``cov`` is σ²·(XᵀX)⁻¹ with σ² = rss / df_resid.
    """
    response: str
    terms: Tuple[Term, ...]
    columns: Tuple[str, ...]
    coefficients: np.ndarray
    std_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    residuals: np.ndarray
    fitted_values: np.ndarray
    rss: float
    df_resid: int
    sigma2: float
    cov: np.ndarray
    r_squared: float
    adj_r_squared: float
    n_obs: int
    row_index: pd.Index
    encoding: Encoding

    @property
    def term_names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.terms)

    def coef_table(self, alpha: float = DEFAULT_ALPHA) -> pd.DataFrame:
        """
        Coefficient table: estimate, SE, t, p and a (1 - alpha) t-interval.
        """
        lo, hi = analytic_ci(self.coefficients, self.std_errors, alpha=alpha, df=self.df_resid)
        return pd.DataFrame(
            {
                "estimate": self.coefficients,
                "se": self.std_errors,
                "t_value": self.t_values,
                "p_value": self.p_values,
                "ci_lower": lo,
                "ci_upper": hi,
            },
            index=pd.Index(self.columns, name="term"),
        )

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """
        Model predictions for new rows.

        :raises SchemaError: if a model column is missing.
        :raises InvalidLevelError: if a categorical value was not seen in the fit.
        """
        _require_columns(df, self.encoding.levels.keys())
        for col in self.encoding.categorical:
            _check_levels(df[col], CategoricalSpec(col, self.encoding.levels[col]))
        X = _build_design(df, self.terms, self.encoding).to_numpy(dtype=float)
        return X @ self.coefficients

    def summary(self) -> str:
        """
        Return a concise multi-line summary of the fit.
        """
        rhs = " + ".join(self.term_names) or "1"
        lines = [
            f"Model: {self.response} ~ {rhs}",
            f"Observations: {self.n_obs}",
            f"Residual df: {self.df_resid}",
            f"RSS: {self.rss:.4f}",
            f"R-squared: {self.r_squared:.4f} (adjusted {self.adj_r_squared:.4f})",
        ]
        for name, est, se, p in zip(self.columns, self.coefficients, self.std_errors, self.p_values):
            lines.append(f"  {name}: {est:.4f} (SE: {se:.4f}, p={p:.4g})")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        return self.coef_table()


@dataclass
class ComparisonResult:
    """
    Nested-model F-test of the terms in ``full`` beyond ``restricted``.
    """
    restricted_terms: Tuple[str, ...]
    full_terms: Tuple[str, ...]
    rss_restricted: float
    rss_full: float
    df1: int
    df2: int
    f_statistic: float
    p_value: float
    alpha: float = DEFAULT_ALPHA

    @property
    def added_terms(self) -> Tuple[str, ...]:
        return tuple(t for t in self.full_terms if t not in self.restricted_terms)

    @property
    def significant(self) -> bool:
        """True when the added terms explain significantly more variance."""
        return self.p_value < self.alpha

    def summary(self) -> str:
        lines = [
            f"Added terms: {', '.join(self.added_terms)}",
            f"RSS: {self.rss_restricted:.4f} -> {self.rss_full:.4f}",
            f"F({self.df1}, {self.df2}) = {self.f_statistic:.4f}",
            f"P-value: {self.p_value:.4g}",
            f"Significant at {self.alpha}: {self.significant}",
        ]
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Return the results as a pandas DataFrame (one row).
        """
        data = asdict(self)
        data["restricted_terms"] = " + ".join(self.restricted_terms)
        data["full_terms"] = " + ".join(self.full_terms)
        data["significant"] = self.significant
        return pd.DataFrame([data])


@dataclass(eq=False)
class EMMResult:
    """
    Estimated marginal means of one factor, with the weights needed to build
    contrasts from the model's full covariance matrix.
    """
    factor: str
    levels: Tuple[Any, ...]
    estimates: np.ndarray
    std_errors: np.ndarray
    ci_lower: np.ndarray
    ci_upper: np.ndarray
    df: int
    alpha: float
    weights: np.ndarray = field(repr=False)
    coefficients: np.ndarray = field(repr=False)
    cov: np.ndarray = field(repr=False)

    def summary(self) -> str:
        lines = [f"Estimated marginal means of {self.factor} ({1 - self.alpha:.0%} CI, df={self.df})"]
        for lvl, est, se, lo, hi in zip(self.levels, self.estimates, self.std_errors,
                                        self.ci_lower, self.ci_upper):
            lines.append(f"  {lvl}: {est:.4f} (SE: {se:.4f}) [{lo:.4f}, {hi:.4f}]")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            self.factor: list(self.levels),
            "emmean": self.estimates,
            "se": self.std_errors,
            "df": self.df,
            "ci_lower": self.ci_lower,
            "ci_upper": self.ci_upper,
        })


@dataclass(eq=False)
class ContrastResult:
    """
    Pairwise differences ``later - earlier`` between marginal means.
    """
    factor: str
    level_a: Tuple[Any, ...]
    level_b: Tuple[Any, ...]
    estimates: np.ndarray
    std_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    p_values_adj: np.ndarray
    ci_lower: np.ndarray
    ci_upper: np.ndarray
    df: int
    alpha: float
    adjust: str

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(f"{b} - {a}" for a, b in zip(self.level_a, self.level_b))

    def summary(self) -> str:
        lines = [f"Contrasts of {self.factor} (adjustment: {self.adjust}, df={self.df})"]
        for lab, est, se, p, lo, hi in zip(self.labels, self.estimates, self.std_errors,
                                           self.p_values_adj, self.ci_lower, self.ci_upper):
            lines.append(f"  {lab}: {est:.4f} (SE: {se:.4f}, p={p:.4g}) [{lo:.4f}, {hi:.4f}]")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            "contrast": list(self.labels),
            "estimate": self.estimates,
            "se": self.std_errors,
            "df": self.df,
            "t_value": self.t_values,
            "p_value": self.p_values,
            "p_value_adj": self.p_values_adj,
            "ci_lower": self.ci_lower,
            "ci_upper": self.ci_upper,
        })


@dataclass
class WelchResult:
    """
    Container for a Welch two-sample comparison of A against B.
    """
    t_statistic: float
    df: float
    p_value: float
    mean_diff: float
    se: float
    ci_lower: float
    ci_upper: float
    alpha: float
    n_a: int
    n_b: int
    mean_a: float
    mean_b: float
    labels: Optional[Tuple[Any, Any]] = None

    def summary(self) -> str:
        a, b = self.labels or ("A", "B")
        lines = [
            f"Welch t-test: {a} (n={self.n_a}, mean={self.mean_a:.4f}) vs "
            f"{b} (n={self.n_b}, mean={self.mean_b:.4f})",
            f"Mean difference: {self.mean_diff:.4f} (SE: {self.se:.4f})",
            f"t({self.df:.2f}) = {self.t_statistic:.4f}",
            f"P-value: {self.p_value:.4g}",
        ]
        if not (math.isnan(self.ci_lower) or math.isnan(self.ci_upper)):
            lines.append(f"CI: [{self.ci_lower:.4f}, {self.ci_upper:.4f}]")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Return the results as a pandas DataFrame (one row).
        """
        data = asdict(self)
        if self.labels is not None:
            data["labels"] = list(self.labels)
        return pd.DataFrame([data])


@dataclass(eq=False)
class CorrelationResult:
    """
    Pearson correlation matrix ``r`` with two-sided p-values ``p``.
    """
    r: pd.DataFrame
    p: pd.DataFrame
    n: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> str:
        lines = [f"Pearson correlations (n={self.n})"]
        for _, row in self.to_dataframe().iterrows():
            lines.append(f"  {row['column_a']} ~ {row['column_b']}: r={row['r']:.4f}, p={row['p_value']:.4g}")
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Long format: one row per unordered column pair.
        """
        cols = list(self.r.columns)
        rows = [
            {"column_a": a, "column_b": b, "r": self.r.loc[a, b], "p_value": self.p.loc[a, b]}
            for i, a in enumerate(cols) for b in cols[i + 1:]
        ]
        return pd.DataFrame(rows, columns=["column_a", "column_b", "r", "p_value"])
