"""Least-squares reduced-form VAR(p) estimation for SVAR-IV inference."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, NamedTuple, Optional

import numpy as np
import pandas as pd
from scipy import linalg
from statsmodels.tsa.tsatools import lagmat

from svariv.errors import InsufficientObservationsError, InvalidInputError, SingularDesignError
from svariv.models.instrument import estimate_gamma, usable_instrument

logger = logging.getLogger(__name__)

_ARRAY_FIELDS = ("coefficients", "sigma", "eta", "X", "Y", "gamma", "external_iv")

# Field names of a user-supplied reduced form, as produced by the MATLAB toolbox.
REQUIRED_MAPPING_KEYS = ("n", "mu", "AL", "Sigma", "eta", "X", "Y", "Gamma", "externalIV")


def as_float_panel(panel) -> np.ndarray:
    """Return the panel as a T x n float array, rejecting missing values."""
    if isinstance(panel, pd.Series):
        panel = panel.to_frame()
    y = np.asarray(panel, dtype=float)
    if y.ndim == 1:
        y = y[:, None]
    if y.ndim != 2:
        raise InvalidInputError(f"Expected a 2D panel (T x n), got shape {y.shape}")
    if y.size == 0:
        raise InvalidInputError("Panel is empty.")
    if not np.all(np.isfinite(y)):
        raise InvalidInputError("Panel contains missing or non-finite values.")
    return y


def _frozen(a) -> np.ndarray:
    out = np.array(a, dtype=float)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class ReducedForm:
    """Reduced-form VAR(p) estimates plus the instrument moment Gamma.

    ``coefficients`` is n x (np + 1) with the intercept in the first column
    followed by the lag blocks [A_1 | ... | A_p]. ``eta`` holds residuals in
    columns (n x T-p) and ``X`` the regressors in rows ((T-p) x (np + 1)).
    """

    p: int
    coefficients: np.ndarray
    sigma: np.ndarray
    eta: np.ndarray
    X: np.ndarray
    Y: np.ndarray
    gamma: np.ndarray
    external_iv: np.ndarray
    Y0: Optional[np.ndarray] = None

    def __post_init__(self):
        object.__setattr__(self, "p", int(self.p))
        for name in _ARRAY_FIELDS:
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        object.__setattr__(self, "gamma", _frozen(self.gamma.reshape(-1)))
        object.__setattr__(self, "external_iv", _frozen(self.external_iv.reshape(-1)))
        if self.Y0 is not None:
            object.__setattr__(self, "Y0", _frozen(self.Y0))
        self._check_dimensions()

    def _check_dimensions(self) -> None:
        if self.p < 1:
            raise InvalidInputError(f"Lag order must be >= 1, got {self.p}")
        if self.coefficients.ndim != 2:
            raise InvalidInputError("Coefficient matrix must be 2D.")
        n, p = self.n, self.p
        k = n * p + 1
        t = self.eta.shape[1] if self.eta.ndim == 2 else -1
        expected = {
            "coefficients": (n, k),
            "sigma": (n, n),
            "eta": (n, t),
            "X": (t, k),
            "Y": (t, n),
            "gamma": (n,),
            "external_iv": (t,),
        }
        if self.Y0 is not None:
            expected["Y0"] = (p, n)
        for name, shape in expected.items():
            actual = getattr(self, name).shape
            if actual != shape:
                raise InvalidInputError(
                    f"Reduced form field '{name}' has shape {actual}, expected {shape} "
                    f"(n={n}, p={p}, T-p={t})."
                )

    @property
    def n(self) -> int:
        return int(self.coefficients.shape[0])

    @property
    def mu(self) -> np.ndarray:
        return self.coefficients[:, 0]

    @property
    def AL(self) -> np.ndarray:
        return self.coefficients[:, 1:]

    @property
    def n_usable(self) -> int:
        return int(self.eta.shape[1])

    @property
    def n_obs(self) -> int:
        return self.n_usable + self.p

    @property
    def d(self) -> int:
        """Size of (vec(A)', Gamma')'."""
        return self.n**2 * self.p + self.n

    @property
    def dall(self) -> int:
        """Size of (vec(A)', vech(Sigma)', Gamma')'."""
        return self.d + self.n * (self.n + 1) // 2

    def lag_matrices(self) -> list[np.ndarray]:
        n = self.n
        return [self.AL[:, lag * n : (lag + 1) * n] for lag in range(self.p)]


class VAROLSFit(NamedTuple):
    coefficients: np.ndarray
    sigma: np.ndarray
    eta: np.ndarray
    X: np.ndarray
    Y: np.ndarray

    @property
    def mu(self) -> np.ndarray:
        return self.coefficients[:, 0]

    @property
    def AL(self) -> np.ndarray:
        return self.coefficients[:, 1:]


def build_var_design(y: np.ndarray, p: int) -> tuple[np.ndarray, np.ndarray]:
    """Return (Y, X) with X rows [1, y_{t-1}', ..., y_{t-p}']."""
    t = y.shape[0]
    x_lags = lagmat(y, maxlag=p, trim="both", original="ex")
    x = np.hstack([np.ones((t - p, 1)), x_lags])
    return y[p:], x


def fit_var_ols(panel, p: int) -> VAROLSFit:
    """Equation-by-equation OLS of a VAR(p) with intercept."""
    y = as_float_panel(panel)
    if int(p) != p or p < 1:
        raise InvalidInputError(f"Lag order must be a positive integer, got {p}")
    p = int(p)
    t, n = y.shape
    k = n * p + 1
    if t - p <= k:
        raise InsufficientObservationsError(
            f"{t} observations leave {t - p} usable periods for {k} regressors per equation "
            f"(n={n}, p={p})."
        )

    y_target, x = build_var_design(y, p)
    if np.linalg.matrix_rank(x) < k:
        raise SingularDesignError("Regressor matrix is rank deficient.")
    try:
        gram = linalg.cho_factor(x.T @ x)
    except linalg.LinAlgError as exc:
        raise SingularDesignError(f"Regressor Gram matrix is not invertible: {exc}") from exc

    coef_rows = linalg.cho_solve(gram, x.T @ y_target)
    coefficients = coef_rows.T
    eta = (y_target - x @ coef_rows).T
    sigma = eta @ eta.T / (t - p)
    sigma = 0.5 * (sigma + sigma.T)
    logger.debug("Estimated VAR(%d) with n=%d on %d usable periods", p, n, t - p)
    return VAROLSFit(coefficients=coefficients, sigma=sigma, eta=eta, X=x, Y=y_target)


def estimate_reduced_form(panel, instrument, p: int) -> ReducedForm:
    """Estimate (AL, Sigma), the residuals and Gamma from raw data."""
    y = as_float_panel(panel)
    z = usable_instrument(instrument, p=int(p), n_obs=y.shape[0])
    fit = fit_var_ols(y, p)
    gamma = estimate_gamma(fit.eta, z)
    return ReducedForm(
        p=p,
        coefficients=fit.coefficients,
        sigma=fit.sigma,
        eta=fit.eta,
        X=fit.X,
        Y=fit.Y,
        gamma=gamma,
        external_iv=z,
        Y0=y[:p],
    )


def reduced_form_from_mapping(mapping: Mapping[str, Any], p: Optional[int] = None) -> ReducedForm:
    """Build a ReducedForm from user-supplied fields (MATLAB RForm names)."""
    if mapping is None:
        raise InvalidInputError("No reduced form supplied.")
    missing = [key for key in REQUIRED_MAPPING_KEYS if key not in mapping or mapping[key] is None]
    if missing:
        raise InvalidInputError(f"Supplied reduced form is missing fields: {missing}")

    n = int(np.asarray(mapping["n"]).reshape(-1)[0])
    mu = np.asarray(mapping["mu"], dtype=float).reshape(-1)
    al = np.asarray(mapping["AL"], dtype=float)
    if al.ndim != 2 or al.shape[0] != n or al.shape[1] % n != 0 or al.shape[1] == 0:
        raise InvalidInputError(f"AL must be n x np with n={n}, got shape {al.shape}")
    inferred_p = al.shape[1] // n
    if p is None:
        p = int(np.asarray(mapping["p"]).reshape(-1)[0]) if "p" in mapping else inferred_p
    if p != inferred_p:
        raise InvalidInputError(f"Lag order {p} inconsistent with AL of shape {al.shape}")
    if mu.shape != (n,):
        raise InvalidInputError(f"mu must have {n} entries, got shape {mu.shape}")

    return ReducedForm(
        p=p,
        coefficients=np.column_stack([mu, al]),
        sigma=np.asarray(mapping["Sigma"], dtype=float),
        eta=np.asarray(mapping["eta"], dtype=float),
        X=np.asarray(mapping["X"], dtype=float),
        Y=np.asarray(mapping["Y"], dtype=float),
        gamma=np.asarray(mapping["Gamma"], dtype=float),
        external_iv=np.asarray(mapping["externalIV"], dtype=float),
        Y0=np.asarray(mapping["Y0"], dtype=float) if mapping.get("Y0") is not None else None,
    )


def reduced_form_to_mapping(rf: ReducedForm) -> dict:
    payload = {
        "p": rf.p,
        "n": rf.n,
        "mu": np.array(rf.mu),
        "AL": np.array(rf.AL),
        "Sigma": np.array(rf.sigma),
        "eta": np.array(rf.eta),
        "X": np.array(rf.X),
        "Y": np.array(rf.Y),
        "Gamma": np.array(rf.gamma),
        "externalIV": np.array(rf.external_iv),
    }
    if rf.Y0 is not None:
        payload["Y0"] = np.array(rf.Y0)
    return payload


def save_reduced_form(rf: ReducedForm, path: Path) -> Path:
    """Persist a reduced form as .npz using the MATLAB field names."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(path, **reduced_form_to_mapping(rf))
    return path if path.suffix == ".npz" else path.with_name(path.name + ".npz")


def load_reduced_form(path: Path) -> ReducedForm:
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"Reduced form file not found: {path}")
    with np.load(path) as data:
        mapping = {key: data[key] for key in data.files}
    return reduced_form_from_mapping(mapping)


__all__ = [
    "REQUIRED_MAPPING_KEYS",
    "ReducedForm",
    "VAROLSFit",
    "as_float_panel",
    "build_var_design",
    "fit_var_ols",
    "estimate_reduced_form",
    "reduced_form_from_mapping",
    "reduced_form_to_mapping",
    "save_reduced_form",
    "load_reduced_form",
]
