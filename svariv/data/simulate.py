"""Synthetic SVAR-IV data with a controllable instrument strength."""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd

from svariv.errors import InvalidInputError
from svariv.eval.irf import companion_matrix

DEFAULT_LAGS = [
    np.array(
        [
            [0.50, 0.10, 0.00],
            [0.20, 0.40, 0.10],
            [0.00, 0.10, 0.30],
        ]
    )
]

# Non-triangular impact matrix, so recursive and IV identification differ.
DEFAULT_IMPACT = np.array(
    [
        [1.00, 0.30, 0.20],
        [0.50, 1.00, 0.00],
        [0.30, 0.20, 1.00],
    ]
)


class SimulatedSVARIV(NamedTuple):
    panel: pd.DataFrame
    instrument: pd.Series
    shocks: np.ndarray
    impact: np.ndarray
    lag_matrices: list


def simulate_svar_iv(
    n_obs: int = 300,
    lag_matrices: Optional[Sequence[np.ndarray]] = None,
    impact: Optional[np.ndarray] = None,
    intercept: Optional[np.ndarray] = None,
    instrument_strength: float = 1.0,
    instrument_noise: float = 1.0,
    burn_in: int = 100,
    seed: int = 0,
    var_names: Optional[Sequence[str]] = None,
) -> SimulatedSVARIV:
    """
    Simulate y_t = c + sum_l A_l y_{t-l} + B eps_t and
    z_t = strength * eps_{1t} + noise * nu_t with Gaussian eps and nu.

    The instrument targets the first structural shock.
    """
    lag_matrices = [np.asarray(a, dtype=float) for a in (lag_matrices or DEFAULT_LAGS)]
    impact = np.asarray(DEFAULT_IMPACT if impact is None else impact, dtype=float)
    n = impact.shape[0]
    p = len(lag_matrices)
    if any(a.shape != (n, n) for a in lag_matrices) or impact.shape != (n, n):
        raise InvalidInputError("Lag and impact matrices must all be n x n.")
    if n_obs <= p:
        raise InvalidInputError(f"n_obs must exceed the lag order {p}.")
    if np.max(np.abs(np.linalg.eigvals(companion_matrix(np.hstack(lag_matrices))))) >= 1:
        raise InvalidInputError("Lag matrices imply a non-stationary VAR.")
    intercept = np.zeros(n) if intercept is None else np.asarray(intercept, dtype=float)

    rng = np.random.default_rng(seed)
    total = n_obs + burn_in
    shocks = rng.standard_normal((total, n))
    noise = rng.standard_normal(total)

    y = np.zeros((total, n))
    for t in range(total):
        y[t] = intercept + impact @ shocks[t]
        for lag in range(1, min(t, p) + 1):
            y[t] += lag_matrices[lag - 1] @ y[t - lag]
    z = instrument_strength * shocks[:, 0] + instrument_noise * noise

    names = list(var_names) if var_names is not None else [f"y{i + 1}" for i in range(n)]
    if len(names) != n:
        raise InvalidInputError(f"Expected {n} variable names, got {len(names)}.")
    index = pd.RangeIndex(n_obs, name="period")
    panel = pd.DataFrame(y[burn_in:], columns=names, index=index)
    instrument = pd.Series(z[burn_in:], index=index, name="z")
    return SimulatedSVARIV(
        panel=panel,
        instrument=instrument,
        shocks=shocks[burn_in:],
        impact=impact,
        lag_matrices=lag_matrices,
    )


__all__ = ["DEFAULT_LAGS", "DEFAULT_IMPACT", "SimulatedSVARIV", "simulate_svar_iv"]
