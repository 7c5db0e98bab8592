"""Tests for plug-in, delta-method and MSW weak-IV robust inference."""

import dataclasses
import math
import warnings

import numpy as np
import pytest

from svariv.errors import InvalidInputError, UnboundedConfidenceSetWarning
from svariv.eval.hac import covariance_from_reduced_form
from svariv.eval.msw import (
    ConfidenceSetShape,
    RobustConfidenceSet,
    critical_value,
    first_stage_wald,
    invert_ar_test,
    msw_inference,
)


def _infer(rf, cov, norm=1, scale=1.0, horizons=12, confidence=0.95, cholesky=True):
    return msw_inference(
        rf,
        cov,
        confidence=confidence,
        norm=norm,
        scale=scale,
        horizons=horizons,
        cholesky=cholesky,
    )


class TestInvertARTest:
    """Closed-form solution of the AR-test quadratic inequality."""

    def test_bounded(self):
        cell = invert_ar_test(1.0, 0.0, -1.0)
        assert cell.shape is ConfidenceSetShape.BOUNDED
        assert (cell.lower, cell.upper) == (-1.0, 1.0)

    def test_empty(self):
        cell = invert_ar_test(1.0, 0.0, 1.0)
        assert cell.shape is ConfidenceSetShape.EMPTY
        assert math.isnan(cell.lower) and math.isnan(cell.upper)

    def test_disjoint(self):
        cell = invert_ar_test(-1.0, 0.0, 1.0)
        assert cell.shape is ConfidenceSetShape.DISJOINT
        assert (cell.lower, cell.upper) == (-math.inf, math.inf)
        assert (cell.gap_lower, cell.gap_upper) == (-1.0, 1.0)

    def test_real_line(self):
        cell = invert_ar_test(-1.0, 0.0, -1.0)
        assert cell.shape is ConfidenceSetShape.REAL_LINE
        assert (cell.lower, cell.upper) == (-math.inf, math.inf)

    def test_half_lines(self):
        left = invert_ar_test(0.0, 2.0, -2.0)
        right = invert_ar_test(0.0, -2.0, 2.0)
        assert left.shape is right.shape is ConfidenceSetShape.HALF_LINE
        assert (left.lower, left.upper) == (-math.inf, 1.0)
        assert (right.lower, right.upper) == (1.0, math.inf)

    def test_degenerate_linear(self):
        assert invert_ar_test(0.0, 0.0, 1.0).shape is ConfidenceSetShape.EMPTY
        assert invert_ar_test(0.0, 0.0, -1.0).shape is ConfidenceSetShape.REAL_LINE

    def test_near_zero_discriminant_is_a_point(self):
        cell = invert_ar_test(1.0, 2.0, 1.0 + 1e-14)
        assert cell.shape is ConfidenceSetShape.BOUNDED
        assert cell.lower == cell.upper == -1.0


class TestRobustConfidenceSet:
    """Membership on the stored set representation."""

    def test_contains_respects_gap(self):
        robust = RobustConfidenceSet(
            lower=np.array([[-np.inf, 0.0, np.nan]]),
            upper=np.array([[np.inf, 1.0, np.nan]]),
            gap_lower=np.array([[-1.0, np.nan, np.nan]]),
            gap_upper=np.array([[1.0, np.nan, np.nan]]),
            shape=np.array([["disjoint", "bounded", "empty"]], dtype=object),
            confidence=0.95,
            critical_value=critical_value(0.95),
            wald_statistic=1.0,
        )
        np.testing.assert_array_equal(robust.contains(np.array([[0.0, 0.5, 0.0]])), [[False, True, False]])
        np.testing.assert_array_equal(robust.contains(np.array([[5.0, 2.0, 0.0]])), [[True, False, False]])
        np.testing.assert_array_equal(robust.is_unbounded, [[True, False, False]])
        np.testing.assert_array_equal(robust.is_empty, [[False, False, True]])


def test_critical_value_95():
    assert critical_value(0.95) == pytest.approx(3.841458820694124, rel=1e-12)


class TestNormalization:
    """The normalizing variable responds by exactly ``scale`` on impact."""

    @pytest.mark.parametrize("norm,scale", [(1, 1.0), (2, 0.25), (3, -2.0)])
    def test_plugin_and_robust_on_impact(self, strong_rf, strong_cov, norm, scale):
        result = _infer(strong_rf, strong_cov, norm=norm, scale=scale)
        j = norm - 1

        assert result.plugin.irf[j, 0] == scale
        assert result.plugin.irf_stderror[j, 0] == 0.0
        assert result.robust.lower[j, 0] == pytest.approx(scale, rel=1e-12)
        assert result.robust.upper[j, 0] == pytest.approx(scale, rel=1e-12)
        assert result.cholesky.irf[j, 0] == pytest.approx(scale, rel=1e-12)

    def test_negative_scale_mirrors_bounds(self, strong_rf, strong_cov):
        pos = _infer(strong_rf, strong_cov, scale=1.0)
        neg = _infer(strong_rf, strong_cov, scale=-1.0)

        np.testing.assert_allclose(neg.plugin.irf, -pos.plugin.irf)
        np.testing.assert_allclose(neg.plugin.irf_stderror, pos.plugin.irf_stderror)
        np.testing.assert_allclose(neg.robust.lower, -pos.robust.upper)
        np.testing.assert_allclose(neg.robust.upper, -pos.robust.lower)
        assert np.all(neg.robust.lower <= neg.robust.upper)


class TestStrongInstrument:
    """With a strong instrument the MSW set is a bounded interval."""

    def test_wald_exceeds_critical_value(self, strong_rf, strong_cov):
        result = _infer(strong_rf, strong_cov)
        assert result.wald_statistic > 10 * result.critical_value
        assert result.wald_statistic == first_stage_wald(strong_rf.gamma, strong_cov.w_hat, 0, strong_rf.n_usable)

    def test_bounded_and_contains_plugin(self, strong_rf, strong_cov):
        with warnings.catch_warnings():
            warnings.simplefilter("error", UnboundedConfidenceSetWarning)
            result = _infer(strong_rf, strong_cov)

        assert result.robust.is_bounded.all()
        assert not result.robust_cum.is_unbounded.any()
        tol = 1e-10
        assert np.all(result.robust.lower <= result.plugin.irf + tol)
        assert np.all(result.plugin.irf <= result.robust.upper + tol)

    def test_msw_wider_than_zero_and_finite(self, strong_rf, strong_cov):
        result = _infer(strong_rf, strong_cov)
        width = result.robust.upper - result.robust.lower
        assert np.isfinite(width).all()
        assert (width[:, 1:] > 0).all()

    def test_delta_method_band_contains_plugin(self, strong_rf, strong_cov):
        result = _infer(strong_rf, strong_cov)
        lower, upper = result.plugin.delta_method_band(0.95)
        assert np.all(lower <= result.plugin.irf) and np.all(result.plugin.irf <= upper)


class TestWeakInstrument:
    """With a nearly irrelevant instrument the MSW set is unbounded."""

    def test_unbounded_with_finite_delta_method(self, weak_rf):
        cov = covariance_from_reduced_form(weak_rf, nw_lags=0)
        with pytest.warns(UnboundedConfidenceSetWarning):
            result = _infer(weak_rf, cov)

        assert result.wald_statistic < result.critical_value
        assert result.robust.is_unbounded.all()
        assert result.robust_cum.is_unbounded.all()
        lower, upper = result.plugin.delta_method_band(0.95)
        assert np.isfinite(lower).all() and np.isfinite(upper).all()


class TestInferenceBehaviour:
    """Determinism, HAC lag sensitivity and the Cholesky benchmark."""

    def test_repeated_runs_bit_identical(self, strong_rf, strong_cov):
        first = _infer(strong_rf, strong_cov)
        second = _infer(strong_rf, covariance_from_reduced_form(strong_rf, nw_lags=0))

        assert np.array_equal(first.plugin.irf, second.plugin.irf)
        assert np.array_equal(first.plugin.irf_stderror, second.plugin.irf_stderror)
        assert np.array_equal(first.robust.lower, second.robust.lower)
        assert np.array_equal(first.robust.upper, second.robust.upper)

    def test_nw_lags_change_standard_errors_only(self, strong_rf, strong_cov):
        base = _infer(strong_rf, strong_cov)
        hac = _infer(strong_rf, covariance_from_reduced_form(strong_rf, nw_lags=6))

        assert np.array_equal(base.plugin.irf, hac.plugin.irf)
        assert not np.allclose(base.plugin.irf_stderror[:, 1:], hac.plugin.irf_stderror[:, 1:])

    def test_cumulative_is_running_sum(self, strong_rf, strong_cov):
        result = _infer(strong_rf, strong_cov)
        np.testing.assert_allclose(result.plugin.irf_cum, np.cumsum(result.plugin.irf, axis=1))

    def test_cholesky_differs_from_plugin(self, strong_rf, strong_cov):
        result = _infer(strong_rf, strong_cov)
        assert not np.allclose(result.cholesky.irf, result.plugin.irf, atol=1e-3)

    def test_cholesky_optional(self, strong_rf, strong_cov):
        assert _infer(strong_rf, strong_cov, cholesky=False).cholesky is None

    def test_output_shapes(self, strong_rf, strong_cov):
        result = _infer(strong_rf, strong_cov, horizons=7)
        for arr in (result.plugin.irf, result.plugin.irf_stderror, result.robust.lower, result.robust_cum.upper):
            assert arr.shape == (3, 8)


class TestInvalidInference:
    """Argument validation."""

    def test_zero_gamma_for_norm(self, strong_rf, strong_cov):
        gamma = np.array(strong_rf.gamma)
        gamma[0] = 0.0
        rf = dataclasses.replace(strong_rf, gamma=gamma)
        with pytest.raises(InvalidInputError):
            _infer(rf, strong_cov)

    @pytest.mark.parametrize(
        "kwargs",
        [{"confidence": 1.0}, {"norm": 0}, {"norm": 4}, {"scale": 0.0}, {"horizons": -1}],
    )
    def test_bad_arguments(self, strong_rf, strong_cov, kwargs):
        with pytest.raises(InvalidInputError):
            _infer(strong_rf, strong_cov, **kwargs)

    def test_covariance_shape_mismatch(self, strong_rf, strong_cov):
        truncated = dataclasses.replace(strong_cov, w_hat=strong_cov.w_hat[:-1, :-1])
        with pytest.raises(InvalidInputError):
            _infer(strong_rf, truncated)
