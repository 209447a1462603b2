import numpy as np
import pytest
import jax.numpy as jnp

from cyclestats.core._adjustments import adjust_pvalues, interval_alpha


P = jnp.array([0.01, 0.04, 0.03])


def test_none_returns_raw():
    assert np.allclose(np.asarray(adjust_pvalues(P, "none")), [0.01, 0.04, 0.03])


def test_bonferroni():
    assert np.allclose(np.asarray(adjust_pvalues(P, "bonferroni")), [0.03, 0.12, 0.09])


def test_bonferroni_caps_at_one():
    assert np.allclose(np.asarray(adjust_pvalues(jnp.array([0.5, 0.9]), "bonferroni")), [1.0, 1.0])


def test_holm():
    # sorted: .01*3, .03*2, .04*1 -> running max .03, .06, .06
    assert np.allclose(np.asarray(adjust_pvalues(P, "holm")), [0.03, 0.06, 0.06])


def test_fdr():
    # sorted: .01*3/1, .03*3/2, .04*3/3 -> running min from the top .03, .04, .04
    assert np.allclose(np.asarray(adjust_pvalues(P, "fdr")), [0.03, 0.04, 0.04])


def test_unknown_method():
    with pytest.raises(ValueError):
        adjust_pvalues(P, "sidak")


def test_interval_alpha():
    assert interval_alpha(0.05, 6, "none") == 0.05
    assert interval_alpha(0.05, 5, "bonferroni") == pytest.approx(0.01)
    assert interval_alpha(0.05, 5, "holm") == pytest.approx(0.01)
    assert interval_alpha(0.05, 1, "fdr") == 0.05
    with pytest.raises(ValueError):
        interval_alpha(0.05, 3, "scheffe")
