"""
cyclestats.core
---------------
Core kernels for table preparation, filtering, model fitting and inference.

Submodules:
  - _data_prep    : schema validation, CategoricalSpec ordering, period flag
  - _outliers     : per-group mean ± k·sd outlier filter
  - _aggregate    : group-by means in declared level order
  - _design       : model terms and design-matrix encoding
  - _parametric   : QR least squares, nested F-test, Welch t-test, Pearson
  - _emm          : reference grids, marginal-mean and contrast weights
  - _intervals    : t / normal / Tukey critical values and CIs
  - _adjustments  : Bonferroni, Holm, Benjamini–Hochberg corrections
"""

import jax
jax.config.update("jax_enable_x64", True)

__all__ = [
    # submodules
    "_data_prep",
    "_outliers",
    "_aggregate",
    "_design",
    "_parametric",
    "_emm",
    "_intervals",
    "_adjustments",
]

# re-export key functions for convenient import
from ._data_prep    import CategoricalSpec, validate_schema, apply_order, apply_orders, add_period
from ._outliers     import _group_mean_sd, _filter_by_group
from ._aggregate    import _group_mean
from ._design       import Term, Encoding, main_effect, interaction, _build_design, _make_encoding
from ._parametric   import _ols_fit, _nested_f_test, _welch, _pearson_kernel
from ._emm          import _emm_weights, _emm_estimates, _pairwise_weights
from ._intervals    import analytic_ci, t_critical, tukey_critical, tukey_p_values
from ._adjustments  import bonferroni, holm, fdr_bh, adjust_pvalues, interval_alpha
