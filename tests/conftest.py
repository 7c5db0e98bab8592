"""Shared pytest fixtures for svariv tests."""

import numpy as np
import pandas as pd
import pytest

from svariv.data.simulate import simulate_svar_iv
from svariv.eval.hac import covariance_from_reduced_form
from svariv.models.reduced_form import estimate_reduced_form


@pytest.fixture
def strong_data():
    """Three-variable VAR(1) DGP with an instrument loading fully on shock 1."""
    return simulate_svar_iv(n_obs=500, instrument_strength=1.0, instrument_noise=1.0, seed=7)


@pytest.fixture
def strong_rf(strong_data):
    return estimate_reduced_form(strong_data.panel, strong_data.instrument, p=2)


@pytest.fixture
def strong_cov(strong_rf):
    return covariance_from_reduced_form(strong_rf, nw_lags=0)


@pytest.fixture
def weak_instrument(strong_data):
    """
    Instrument whose cross-moment with the residuals is 1e-4 times that of
    the first structural shock.

    The noise component is projected off the residual rows, so Gamma is
    exactly delta * eta e1 / T and the first-stage Wald statistic is tiny.
    """
    p = 2
    rf = estimate_reduced_form(strong_data.panel, strong_data.instrument, p=p)
    eta = np.array(rf.eta)
    rng = np.random.default_rng(11)
    noise = rng.standard_normal(eta.shape[1])
    noise -= eta.T @ np.linalg.solve(eta @ eta.T, eta @ noise)
    delta = 1e-4
    z_usable = delta * strong_data.shocks[p:, 0] + noise
    z = np.concatenate([np.zeros(p), z_usable])
    return pd.Series(z, index=strong_data.panel.index, name="z_weak")


@pytest.fixture
def weak_rf(strong_data, weak_instrument):
    return estimate_reduced_form(strong_data.panel, weak_instrument, p=2)


@pytest.fixture
def simulated_csv(tmp_path, strong_data):
    df = strong_data.panel.copy()
    df["z"] = strong_data.instrument.values
    path = tmp_path / "sim.csv"
    df.to_csv(path, index=False)
    return path
