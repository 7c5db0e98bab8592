"""Tests for least-squares reduced-form VAR estimation."""

import dataclasses

import numpy as np
import pandas as pd
import pytest
from statsmodels.tsa.api import VAR

from svariv.errors import InsufficientObservationsError, InvalidInputError, SingularDesignError
from svariv.models.reduced_form import (
    REQUIRED_MAPPING_KEYS,
    build_var_design,
    estimate_reduced_form,
    fit_var_ols,
    load_reduced_form,
    reduced_form_from_mapping,
    reduced_form_to_mapping,
    save_reduced_form,
)


def _noiseless_var1(n_obs: int = 14) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    A = np.array([[0.5, 0.25], [-0.25, 0.5]])
    c = np.array([1.0, -0.5])
    y = np.zeros((n_obs, 2))
    y[0] = [2.0, 1.0]
    for t in range(1, n_obs):
        y[t] = c + A @ y[t - 1]
    return y, A, c


class TestDesign:
    """Tests for the regressor layout."""

    def test_rows_are_intercept_then_lags(self):
        y = np.arange(12, dtype=float).reshape(6, 2)
        Y, X = build_var_design(y, p=2)

        assert Y.shape == (4, 2)
        assert X.shape == (4, 5)
        np.testing.assert_array_equal(X[0], [1.0, y[1, 0], y[1, 1], y[0, 0], y[0, 1]])
        np.testing.assert_array_equal(Y[0], y[2])


class TestFitVarOLS:
    """Tests for fit_var_ols."""

    def test_noiseless_var1_recovered(self):
        """A deterministic VAR(1) path pins down (c, A) with zero residuals."""
        y, A, c = _noiseless_var1()
        fit = fit_var_ols(y, p=1)

        np.testing.assert_allclose(fit.mu, c, atol=1e-8)
        np.testing.assert_allclose(fit.AL, A, atol=1e-8)
        np.testing.assert_allclose(fit.sigma, np.zeros((2, 2)), atol=1e-15)

    def test_hand_computed_var1_with_residuals(self):
        """Lagged regressors are orthogonal, so every OLS quantity is an exact rational."""
        y = np.array([[1.0, 1.0], [1.0, -1.0], [-1.0, 1.0], [-1.0, -1.0], [3.0, 3.0]])
        fit = fit_var_ols(y, p=1)

        np.testing.assert_allclose(fit.mu, [0.5, 0.5], atol=1e-12)
        np.testing.assert_allclose(fit.AL, [[-0.5, -0.5], [-0.5, -1.5]], atol=1e-12)
        np.testing.assert_allclose(
            fit.eta,
            [[1.5, -1.5, -1.5, 1.5], [0.5, -0.5, -0.5, 0.5]],
            atol=1e-12,
        )
        # eta eta' / (T - p) with T - p = 4
        np.testing.assert_allclose(fit.sigma, [[2.25, 0.75], [0.75, 0.25]], atol=1e-12)

    def test_matches_statsmodels_var(self, strong_data):
        fit = fit_var_ols(strong_data.panel, p=2)
        res = VAR(strong_data.panel.values).fit(maxlags=2, trend="c")

        np.testing.assert_allclose(fit.coefficients, res.params.T, rtol=1e-8, atol=1e-10)
        np.testing.assert_allclose(fit.sigma, res.sigma_u_mle, rtol=1e-8, atol=1e-12)
        np.testing.assert_allclose(fit.eta, np.asarray(res.resid).T, atol=1e-10)

    def test_sigma_symmetric_psd(self, strong_rf):
        assert np.array_equal(strong_rf.sigma, strong_rf.sigma.T)
        assert np.linalg.eigvalsh(strong_rf.sigma).min() > 0

    def test_insufficient_observations(self):
        rng = np.random.default_rng(0)
        with pytest.raises(InsufficientObservationsError):
            fit_var_ols(rng.standard_normal((5, 2)), p=2)

    def test_duplicate_columns_singular(self):
        rng = np.random.default_rng(0)
        x = rng.standard_normal(50)
        panel = np.column_stack([x, x])
        with pytest.raises(SingularDesignError):
            fit_var_ols(panel, p=1)

    def test_missing_values_rejected(self):
        panel = pd.DataFrame({"a": [1.0, np.nan, 3.0, 4.0], "b": [1.0, 2.0, 3.0, 4.0]})
        with pytest.raises(InvalidInputError):
            fit_var_ols(panel, p=1)

    def test_invalid_lag_order(self):
        with pytest.raises(InvalidInputError):
            fit_var_ols(np.ones((20, 2)), p=0)

    def test_singular_error_is_linalg_error(self):
        """Callers catching numpy's LinAlgError still see design failures."""
        assert issubclass(SingularDesignError, np.linalg.LinAlgError)


class TestReducedForm:
    """Tests for the ReducedForm container and its persistence."""

    def test_dimensions(self, strong_rf):
        n, p = 3, 2
        assert strong_rf.n == n
        assert strong_rf.p == p
        assert strong_rf.n_usable == 498
        assert strong_rf.n_obs == 500
        assert strong_rf.d == n * n * p + n
        assert strong_rf.dall == strong_rf.d + n * (n + 1) // 2
        assert strong_rf.Y0.shape == (p, n)
        assert len(strong_rf.lag_matrices()) == p

    def test_gamma_is_residual_instrument_moment(self, strong_data, strong_rf):
        z = strong_data.instrument.values[2:]
        np.testing.assert_allclose(strong_rf.gamma, strong_rf.eta @ z / len(z))

    def test_arrays_read_only(self, strong_rf):
        assert not strong_rf.sigma.flags.writeable
        with pytest.raises(ValueError):
            strong_rf.gamma[0] = 0.0

    def test_inconsistent_shapes_rejected(self, strong_rf):
        with pytest.raises(InvalidInputError):
            dataclasses.replace(strong_rf, gamma=np.ones(2))

    def test_mapping_round_trip(self, strong_rf):
        mapping = reduced_form_to_mapping(strong_rf)
        assert set(REQUIRED_MAPPING_KEYS) <= set(mapping)

        rebuilt = reduced_form_from_mapping(mapping)
        assert np.array_equal(rebuilt.coefficients, strong_rf.coefficients)
        assert np.array_equal(rebuilt.gamma, strong_rf.gamma)
        assert np.array_equal(rebuilt.external_iv, strong_rf.external_iv)

    def test_incomplete_mapping_rejected(self, strong_rf):
        mapping = reduced_form_to_mapping(strong_rf)
        del mapping["Gamma"]
        with pytest.raises(InvalidInputError, match="Gamma"):
            reduced_form_from_mapping(mapping)

    def test_lag_order_inconsistent_with_AL(self, strong_rf):
        with pytest.raises(InvalidInputError):
            reduced_form_from_mapping(reduced_form_to_mapping(strong_rf), p=3)

    def test_npz_round_trip(self, tmp_path, strong_rf):
        path = save_reduced_form(strong_rf, tmp_path / "rf.npz")
        loaded = load_reduced_form(path)

        assert loaded.p == strong_rf.p
        assert np.array_equal(loaded.sigma, strong_rf.sigma)
        assert np.array_equal(loaded.X, strong_rf.X)
        assert np.array_equal(loaded.Y0, strong_rf.Y0)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(InvalidInputError):
            load_reduced_form(tmp_path / "nope.npz")

    def test_instrument_length_mismatch(self, strong_data):
        with pytest.raises(InvalidInputError):
            estimate_reduced_form(strong_data.panel, strong_data.instrument.values[:-1], p=2)
