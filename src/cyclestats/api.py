# src/cyclestats/api.py

import logging
import warnings
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import (
    DAY_LEVELS,
    DEFAULT_ALPHA,
    HIRES_SCHEMA,
    LOCKDOWN_START,
    MONTH_LEVELS,
    OUTLIER_WIDTH,
)
from .core._adjustments import ContrastAdjust, adjust_pvalues, interval_alpha
from .core._aggregate import _group_mean
from .core._data_prep import (
    CategoricalSpec,
    SpecsArg,
    _require_columns,
    _resolve_levels,
    _spec_map,
    add_period as _add_period,
    apply_orders,
    validate_schema,
)
from .core._design import TermLike, _as_terms, _build_design, _make_encoding
from .core._emm import _emm_estimates, _emm_weights, _pairwise_weights
from .core._intervals import analytic_ci, tukey_critical, tukey_p_values
from .core._outliers import _filter_by_group
from .core._parametric import _nested_f_test, _ols_fit, _pearson_kernel, _two_sided_p, _welch
from .errors import InsufficientDataError, NestedModelError, SchemaError
from .results import (
    ComparisonResult,
    ContrastResult,
    CorrelationResult,
    EMMResult,
    FittedModel,
    WelchResult,
)

logger = logging.getLogger(__name__)

MONTH_SPEC = CategoricalSpec("month", MONTH_LEVELS)
DAY_SPEC = CategoricalSpec("day", DAY_LEVELS)


# ───────────────────────────────────────────────────────────────────────────────
# Table preparation
# ───────────────────────────────────────────────────────────────────────────────

def prepare_table(
    df: pd.DataFrame,
    indicators: Sequence[str] = (),
    specs: SpecsArg = None,
) -> pd.DataFrame:
    """
    Validate a daily-hires table and attach the canonical level orders.

    :param df: table with ``date``, ``Hires``, ``day``, ``month``, ``year``.
    :param indicators: names of the 0/1 policy indicator columns.
    :param specs: level orders to apply; defaults to Mon..Sun and Jan..Dec.
    :return: a validated copy with ordered ``day``/``month`` categoricals.
    :raises SchemaError: if a required column is missing or mistyped.
    :raises InvalidLevelError: if ``day`` or ``month`` holds an unknown label.
    """
    schema = dict(HIRES_SCHEMA)
    schema.update({col: "binary" for col in indicators})
    validate_schema(df, schema, non_negative=["Hires"])
    if specs is None:
        specs = [DAY_SPEC, MONTH_SPEC]
    out = apply_orders(df, specs)
    logger.info("Prepared table with %d rows and %d indicator(s)", len(out), len(indicators))
    return out


def add_period(
    df: pd.DataFrame,
    cutoff: pd.Timestamp = LOCKDOWN_START,
    column: str = "period",
    date_column: str = "date",
) -> pd.DataFrame:
    """
    Add an ordered ``pre_covid`` / ``covid`` flag split at ``cutoff``.
    """
    return _add_period(df, cutoff, column=column, date_column=date_column)


def filter_outliers(
    df: pd.DataFrame,
    group: str = "year",
    value: str = "Hires",
    width: float = OUTLIER_WIDTH,
) -> pd.DataFrame:
    """
    Drop rows further than ``width`` sample standard deviations from their
    group's mean.

    Statistics are computed per group on ``df`` itself; filtering an
    already-filtered table recomputes them rather than reusing earlier
    bounds. Groups with a single row are kept whole (with a UserWarning).

    :return: a new DataFrame carrying the original index.
    :raises SchemaError: if a column is missing or ``value`` is not numeric.
    """
    _require_columns(df, [group, value])
    if not pd.api.types.is_numeric_dtype(df[value].dtype):
        raise SchemaError(f"Column '{value}' must be numeric to filter outliers")
    if width <= 0:
        raise ValueError("width must be positive")
    out = _filter_by_group(df, group, value, width)
    logger.info(
        "Outlier filter on %s by %s removed %d of %d rows",
        value, group, len(df) - len(out), len(df),
    )
    return out


def group_mean(
    df: pd.DataFrame,
    by: Sequence[str],
    value: str = "Hires",
    specs: SpecsArg = None,
) -> pd.DataFrame:
    """
    Mean of ``value`` for every observed combination of ``by``, sorted in
    each column's declared level order.

    :param by: grouping columns; a single name is accepted too.
    :param specs: optional level orders overriding the table's own.
    :return: DataFrame with the ``by`` columns, the mean of ``value`` and ``n``.
    """
    if isinstance(by, str):
        by = [by]
    return _group_mean(df, by, value, _spec_map(specs))


# ───────────────────────────────────────────────────────────────────────────────
# Linear models
# ───────────────────────────────────────────────────────────────────────────────

def fit(
    df: pd.DataFrame,
    response: str,
    terms: Sequence[TermLike] = (),
    specs: SpecsArg = None,
) -> FittedModel:
    """
    Fit ``response ~ 1 + terms`` by ordinary least squares.

    Numeric columns enter as-is; categorical columns are dummy encoded
    against their first (observed) level; interactions are elementwise
    products of their constituents' encodings.

    :param df: data table; every row is used.
    :param response: numeric outcome column.
    :param terms: column names (main effects) or :class:`Term` objects,
        e.g. ``["wfh", "month", interaction("wfh", "month")]``.
    :param specs: optional level orders for categorical columns.
    :raises SchemaError: if a column is missing or the response is not numeric.
    :raises InvalidLevelError: if a value falls outside a declared order.
    :raises RankDeficiencyError: if the design matrix is not of full column rank.
    :raises InsufficientDataError: if no residual degrees of freedom remain.
    """
    terms = _as_terms(terms)
    _require_columns(df, [response])
    if not pd.api.types.is_numeric_dtype(df[response].dtype):
        raise SchemaError(f"Response '{response}' must be numeric")
    if any(response in t.columns for t in terms):
        raise SchemaError(f"Response '{response}' cannot also be a model term")

    encoding = _make_encoding(df, terms, _spec_map(specs))
    X_pd = _build_design(df, terms, encoding)
    y = df[response].to_numpy(dtype=float)

    res = _ols_fit(X_pd.to_numpy(dtype=float), y, columns=tuple(X_pd.columns))

    n = len(y)
    tss = float(np.sum((y - y.mean()) ** 2))
    r2 = 1.0 - res["rss"] / tss if tss > 0 else float("nan")
    adj_r2 = 1.0 - (1.0 - r2) * (n - 1) / res["df_resid"]

    model = FittedModel(
        response=response,
        terms=terms,
        columns=tuple(X_pd.columns),
        coefficients=res["betas"],
        std_errors=res["ses"],
        t_values=res["t_stats"],
        p_values=res["p_values"],
        residuals=res["resid"],
        fitted_values=res["fitted"],
        rss=res["rss"],
        df_resid=res["df_resid"],
        sigma2=res["sigma2"],
        cov=res["cov"],
        r_squared=r2,
        adj_r_squared=adj_r2,
        n_obs=n,
        row_index=df.index.copy(),
        encoding=encoding,
    )
    logger.info(
        "Fitted %s ~ %s on %d rows (df_resid=%d)",
        response, " + ".join(model.term_names) or "1", n, model.df_resid,
    )
    return model


def compare(
    restricted: FittedModel,
    full: FittedModel,
    alpha: float = DEFAULT_ALPHA,
) -> ComparisonResult:
    """
    Nested-model F-test: do the extra terms in ``full`` explain a
    significant amount of additional variance?

    :raises NestedModelError: if the models use different responses or rows,
        if ``restricted``'s terms are not a strict subset of ``full``'s, or if
        ``full`` has no fewer residual degrees of freedom.
    """
    if restricted.response != full.response:
        raise NestedModelError(
            f"Models have different responses: '{restricted.response}' vs '{full.response}'"
        )
    if not restricted.row_index.equals(full.row_index):
        raise NestedModelError("Models were not fit on the same rows")
    r_keys = {t.key for t in restricted.terms}
    f_keys = {t.key for t in full.terms}
    if not r_keys < f_keys:
        raise NestedModelError(
            f"Terms {list(restricted.term_names)} are not a strict subset of "
            f"{list(full.term_names)}"
        )
    df1 = restricted.df_resid - full.df_resid
    if df1 <= 0:
        raise NestedModelError(
            f"Full model must have fewer residual df ({full.df_resid}) than the "
            f"restricted model ({restricted.df_resid})"
        )

    F, p = _nested_f_test(restricted.rss, restricted.df_resid, full.rss, full.df_resid)
    result = ComparisonResult(
        restricted_terms=restricted.term_names,
        full_terms=full.term_names,
        rss_restricted=restricted.rss,
        rss_full=full.rss,
        df1=df1,
        df2=full.df_resid,
        f_statistic=F,
        p_value=p,
        alpha=alpha,
    )
    logger.info("Nested F-test F(%d, %d) = %.4g, p = %.4g", df1, full.df_resid, F, p)
    return result


# ───────────────────────────────────────────────────────────────────────────────
# Marginal means and contrasts
# ───────────────────────────────────────────────────────────────────────────────

def marginal_means(
    model: FittedModel,
    factor: str,
    alpha: float = DEFAULT_ALPHA,
) -> EMMResult:
    """
    Estimated marginal mean of ``model``'s response for each level of
    ``factor``: other categorical columns averaged uniformly over their
    levels, numeric columns held at their sample mean.

    :raises SchemaError: if ``factor`` is not a categorical column of the model.
    """
    levels, L = _emm_weights(model.encoding, model.terms, model.columns, factor)
    est, se = _emm_estimates(L, model.coefficients, model.cov)
    lo, hi = analytic_ci(est, se, alpha=alpha, df=model.df_resid)
    return EMMResult(
        factor=factor,
        levels=levels,
        estimates=est,
        std_errors=se,
        ci_lower=lo,
        ci_upper=hi,
        df=model.df_resid,
        alpha=alpha,
        weights=L,
        coefficients=model.coefficients,
        cov=model.cov,
    )


def contrasts(
    emm: EMMResult,
    adjust: ContrastAdjust = "none",
    alpha: Optional[float] = None,
) -> ContrastResult:
    """
    All pairwise differences ``later - earlier`` between the levels of
    ``emm``, in declared level order.

    :param adjust: multiple-comparison policy. ``"none"`` gives unadjusted
        (least-significant-difference) p-values and intervals;
        ``"bonferroni"``, ``"holm"`` and ``"fdr"`` adjust p-values and use
        Bonferroni intervals; ``"tukey"`` uses the studentized range for both.
    :param alpha: interval level; defaults to the EMM's alpha.
    """
    alpha = emm.alpha if alpha is None else alpha
    pairs, D = _pairwise_weights(emm.weights)
    m = len(pairs)
    if m == 0:
        raise InsufficientDataError(f"Factor '{emm.factor}' has fewer than two levels")

    est, se = _emm_estimates(D, emm.coefficients, emm.cov)
    with np.errstate(divide="ignore", invalid="ignore"):
        t_vals = est / se
    df = emm.df
    raw_p = np.asarray(_two_sided_p(np.abs(t_vals), float(df)))

    if adjust == "tukey":
        k = len(emm.levels)
        p_adj = tukey_p_values(t_vals, k, df)
        crit = tukey_critical(alpha, k, df)
        lo, hi = est - crit * se, est + crit * se
    else:
        p_adj = np.asarray(adjust_pvalues(raw_p, method=adjust))
        lo, hi = analytic_ci(est, se, alpha=interval_alpha(alpha, m, adjust), df=df)

    return ContrastResult(
        factor=emm.factor,
        level_a=tuple(emm.levels[i] for i, _ in pairs),
        level_b=tuple(emm.levels[j] for _, j in pairs),
        estimates=est,
        std_errors=se,
        t_values=t_vals,
        p_values=raw_p,
        p_values_adj=p_adj,
        ci_lower=lo,
        ci_upper=hi,
        df=df,
        alpha=alpha,
        adjust=adjust,
    )


# ───────────────────────────────────────────────────────────────────────────────
# Two-sample comparison and correlation
# ───────────────────────────────────────────────────────────────────────────────

def welch_test(
    sample_a,
    sample_b,
    alpha: float = DEFAULT_ALPHA,
    labels: Optional[Tuple[str, str]] = None,
) -> WelchResult:
    """
    Welch two-sample t-test of mean(A) - mean(B), unequal variances assumed.

    :raises InsufficientDataError: if either sample has fewer than two values.
    """
    res = _welch(sample_a, sample_b)
    lo, hi = analytic_ci(res["mean_diff"], res["se"], alpha=alpha, df=res["df"])
    return WelchResult(
        t_statistic=res["t_statistic"],
        df=res["df"],
        p_value=res["p_value"],
        mean_diff=res["mean_diff"],
        se=res["se"],
        ci_lower=float(lo),
        ci_upper=float(hi),
        alpha=alpha,
        n_a=res["n_a"],
        n_b=res["n_b"],
        mean_a=res["mean_a"],
        mean_b=res["mean_b"],
        labels=labels,
    )


def welch_by_group(
    df: pd.DataFrame,
    value: str,
    group: str,
    alpha: float = DEFAULT_ALPHA,
    specs: SpecsArg = None,
) -> WelchResult:
    """
    Welch test of ``value`` between the two levels of ``group``; the first
    level in declared order is sample A.

    :raises SchemaError: if ``group`` does not have exactly two observed levels.
    """
    _require_columns(df, [value, group])
    levels = _resolve_levels(df, group, _spec_map(specs))
    if levels is None:
        levels = tuple(sorted(pd.unique(df[group])))
    observed = set(pd.unique(df[group]))
    levels = tuple(lvl for lvl in levels if lvl in observed)
    if len(levels) != 2:
        raise SchemaError(
            f"Column '{group}' must have exactly two observed levels, found {list(levels)}"
        )
    a = df.loc[df[group] == levels[0], value]
    b = df.loc[df[group] == levels[1], value]
    return welch_test(a, b, alpha=alpha, labels=levels)


def correlation_matrix(
    df: pd.DataFrame,
    columns: Sequence[str],
) -> CorrelationResult:
    """
    Pearson correlation matrix with two-sided p-values (n - 2 df).

    :raises SchemaError: if a column is missing or not numeric.
    :raises InsufficientDataError: if fewer than three rows are available.
    """
    columns = list(columns)
    _require_columns(df, columns)
    for col in columns:
        if not pd.api.types.is_numeric_dtype(df[col].dtype):
            raise SchemaError(f"Column '{col}' must be numeric for correlation")
    n = len(df)
    if n < 3:
        raise InsufficientDataError(f"Correlation needs at least 3 rows, got {n}")

    data = df[columns].to_numpy(dtype=float)
    constant = [c for c, sd in zip(columns, data.std(axis=0)) if sd == 0]
    if constant:
        warnings.warn(
            f"Column(s) {constant} are constant; their correlations are undefined",
            UserWarning,
        )
    r, p = _pearson_kernel(data)
    return CorrelationResult(
        r=pd.DataFrame(np.asarray(r), index=columns, columns=columns),
        p=pd.DataFrame(np.asarray(p), index=columns, columns=columns),
        n=n,
        metadata={"constant_columns": constant},
    )
