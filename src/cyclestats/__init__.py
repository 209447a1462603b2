# src/cyclestats/__init__.py

"""
cyclestats
==========

Statistical modelling of daily bicycle-hire counts against binary policy
indicators and calendar effects, on pandas DataFrames. Features:

- Year-stratified mean ± 2·sd outlier filtering
- Explicit categorical level orders for grouping and dummy encoding
- Group-wise means in declared level order
- OLS with categorical and interaction terms, solved by QR
- Nested-model F-tests
- Estimated marginal means and pairwise contrasts (LSD, Bonferroni, Holm, FDR, Tukey)
- Welch two-sample tests and Pearson correlation matrices
- JAX kernels in float64
"""

__version__ = "0.1.0"

# High-level API
from .api import (
    prepare_table,
    add_period,
    filter_outliers,
    group_mean,
    fit,
    compare,
    marginal_means,
    contrasts,
    welch_test,
    welch_by_group,
    correlation_matrix,
)
from .core import CategoricalSpec, Term, apply_order, apply_orders, interaction, main_effect, adjust_pvalues

# Result classes
from .results import (
    FittedModel,
    ComparisonResult,
    EMMResult,
    ContrastResult,
    WelchResult,
    CorrelationResult,
)
from .errors import (
    CycleStatsError,
    SchemaError,
    InvalidLevelError,
    RankDeficiencyError,
    NestedModelError,
    InsufficientDataError,
)

__all__ = [
    "prepare_table",
    "add_period",
    "filter_outliers",
    "group_mean",
    "fit",
    "compare",
    "marginal_means",
    "contrasts",
    "welch_test",
    "welch_by_group",
    "correlation_matrix",
    "CategoricalSpec",
    "Term",
    "apply_order",
    "apply_orders",
    "interaction",
    "main_effect",
    "adjust_pvalues",
    "FittedModel",
    "ComparisonResult",
    "EMMResult",
    "ContrastResult",
    "WelchResult",
    "CorrelationResult",
    "CycleStatsError",
    "SchemaError",
    "InvalidLevelError",
    "RankDeficiencyError",
    "NestedModelError",
    "InsufficientDataError",
]
