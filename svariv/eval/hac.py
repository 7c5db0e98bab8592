"""
HAC Covariance of the Reduced-Form Parameters
=============================================

Newey-West estimate of the asymptotic covariance of

    (vec(A)', vech(Sigma)', Gamma')'

where A collects the VAR slope coefficients, Sigma the residual covariance
and Gamma the residual-instrument cross-moment. The (vec(A)', Gamma')'
sub-block is all that IRF inference needs; the full matrix supports
variance-decomposition extensions.

References:
-----------
- Newey, W.K. & West, K.D. (1987). A Simple, Positive Semi-Definite,
  Heteroskedasticity and Autocorrelation Consistent Covariance Matrix.
  Econometrica, 55(3), 703-708.
- Montiel Olea, J.L., Stock, J.H. & Watson, M.W. (2021). Inference in
  Structural Vector Autoregressions Identified with an External Instrument.
  Journal of Econometrics, 225(1), 74-87.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy import linalg

from svariv.config.settings import PSD_TOLERANCE
from svariv.errors import DegenerateCovarianceError, InvalidInputError, SingularDesignError
from svariv.models.reduced_form import ReducedForm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AsymptoticCovariance:
    """Covariance of sqrt(T-p) times the stacked parameter estimator."""

    w_hat_all: np.ndarray
    w_hat: np.ndarray
    nw_lags: int
    n: int
    p: int
    n_usable: int

    def __post_init__(self):
        for name in ("w_hat_all", "w_hat"):
            arr = np.array(getattr(self, name), dtype=float)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def d(self) -> int:
        return self.w_hat.shape[0]

    @property
    def dall(self) -> int:
        return self.w_hat_all.shape[0]


def elimination_matrix(n: int) -> np.ndarray:
    """
    Return V such that vech(S) = V vec(S) for a symmetric n x n matrix S.

    vech stacks the lower triangle column by column.
    """
    eye = np.eye(n)
    blocks = [np.kron(eye[i : i + 1, :], eye[i:, :]) for i in range(n)]
    return np.vstack(blocks)


def stacked_moments(X: np.ndarray, eta: np.ndarray, z: np.ndarray) -> np.ndarray:
    """
    Per-period moment vectors vec(eta_t [X_t', eta_t', z_t]).

    Parameters
    ----------
    X : np.ndarray
        Regressors, (T-p) x k
    eta : np.ndarray
        Residuals, n x (T-p)
    z : np.ndarray
        Usable instrument, length T-p

    Returns
    -------
    moments : np.ndarray
        (T-p) x n(k + n + 1); row t ordered as kron(w_t, eta_t)
    """
    resid = eta.T
    w = np.column_stack([X, resid, np.asarray(z, dtype=float).reshape(-1)])
    t = w.shape[0]
    return np.einsum("tj,ti->tji", w, resid).reshape(t, -1)


def newey_west_covariance(
    moments: np.ndarray,
    lags: int,
    demean: bool = True,
) -> np.ndarray:
    """
    Newey-West long-run covariance of a vector moment series.

    Parameters
    ----------
    moments : np.ndarray
        T x m matrix, one moment vector per period
    lags : int
        Truncation lag L; Bartlett weights 1 - j/(L+1)
    demean : bool
        Subtract the sample mean before forming autocovariances

    Returns
    -------
    omega : np.ndarray
        m x m symmetric long-run covariance
    """
    m = np.asarray(moments, dtype=float)
    if m.ndim == 1:
        m = m[:, None]
    t = m.shape[0]
    if int(lags) != lags or lags < 0 or lags >= t:
        raise InvalidInputError(f"Newey-West lags must be an integer in [0, {t - 1}], got {lags}")
    if demean:
        m = m - m.mean(axis=0)

    def autocov(j: int) -> np.ndarray:
        return m[j:].T @ m[: t - j] / t

    omega = autocov(0) + sum(
        (1 - j / (lags + 1)) * (autocov(j) + autocov(j).T) for j in range(1, int(lags) + 1)
    )
    return 0.5 * (omega + omega.T)


def ensure_positive_semidefinite(matrix: np.ndarray, tol: float = PSD_TOLERANCE) -> np.ndarray:
    """Raise DegenerateCovarianceError unless matrix is finite and PSD within tol."""
    if not np.all(np.isfinite(matrix)):
        raise DegenerateCovarianceError("Covariance estimate contains non-finite values.")
    eigvals = np.linalg.eigvalsh(matrix)
    floor = -tol * max(1.0, float(np.max(np.abs(eigvals))))
    if eigvals.min() < floor:
        raise DegenerateCovarianceError(
            f"Covariance estimate is not positive semi-definite (min eigenvalue {eigvals.min():.3e})."
        )
    return matrix


def _selection_matrix(p: int, X: np.ndarray, z: np.ndarray, n: int) -> np.ndarray:
    """Map averaged moments to (vec(A)', vech(Sigma)', Gamma')' deviations."""
    t, k = X.shape
    try:
        q1_factor = linalg.cho_factor(X.T @ X / t)
    except linalg.LinAlgError as exc:
        raise SingularDesignError(f"Regressor moment matrix is not invertible: {exc}") from exc
    q1_inv = linalg.cho_solve(q1_factor, np.eye(k))
    q2 = (np.asarray(z, dtype=float).reshape(1, -1) @ X) / t
    eye_n = np.eye(n)
    n_vech = n * (n + 1) // 2
    n_slopes = n * n * p

    slope_select = np.hstack([np.zeros((n * p, 1)), np.eye(n * p)])
    top = np.hstack(
        [np.kron(slope_select @ q1_inv, eye_n), np.zeros((n_slopes, n * n)), np.zeros((n_slopes, n))]
    )
    middle = np.hstack([np.zeros((n_vech, n * k)), elimination_matrix(n), np.zeros((n_vech, n))])
    bottom = np.hstack([-np.kron(q2 @ q1_inv, eye_n), np.zeros((n, n * n)), eye_n])
    return np.vstack([top, middle, bottom])


def estimate_asymptotic_covariance(
    p: int,
    X: np.ndarray,
    z: np.ndarray,
    eta: np.ndarray,
    nw_lags: int,
) -> AsymptoticCovariance:
    """
    HAC covariance of (vec(A)', vech(Sigma)', Gamma')' and its
    (vec(A)', Gamma')' sub-block.

    Parameters
    ----------
    p : int
        VAR lag order
    X : np.ndarray
        Regressors, (T-p) x (np + 1)
    z : np.ndarray
        Instrument over the usable sample
    eta : np.ndarray
        Residuals, n x (T-p)
    nw_lags : int
        Newey-West truncation lag

    Returns
    -------
    AsymptoticCovariance
    """
    X = np.asarray(X, dtype=float)
    eta = np.asarray(eta, dtype=float)
    z = np.asarray(z, dtype=float).reshape(-1)
    n, t = eta.shape
    if X.shape != (t, n * p + 1) or len(z) != t:
        raise InvalidInputError(
            f"Inconsistent inputs: X {X.shape}, eta {eta.shape}, z {z.shape} for p={p}."
        )

    omega = newey_west_covariance(stacked_moments(X, eta, z), lags=nw_lags)
    select = _selection_matrix(p, X, z, n)
    w_hat_all = select @ omega @ select.T
    w_hat_all = 0.5 * (w_hat_all + w_hat_all.T)
    ensure_positive_semidefinite(w_hat_all)

    n_slopes = n * n * p
    keep = np.r_[np.arange(n_slopes), np.arange(w_hat_all.shape[0] - n, w_hat_all.shape[0])]
    w_hat = w_hat_all[np.ix_(keep, keep)]
    logger.debug("HAC covariance with %d Newey-West lags: dall=%d, d=%d", nw_lags, w_hat_all.shape[0], len(keep))
    return AsymptoticCovariance(
        w_hat_all=w_hat_all,
        w_hat=w_hat,
        nw_lags=int(nw_lags),
        n=n,
        p=int(p),
        n_usable=t,
    )


def covariance_from_reduced_form(rf: ReducedForm, nw_lags: int) -> AsymptoticCovariance:
    return estimate_asymptotic_covariance(rf.p, rf.X, rf.external_iv, rf.eta, nw_lags)


__all__ = [
    "AsymptoticCovariance",
    "elimination_matrix",
    "stacked_moments",
    "newey_west_covariance",
    "ensure_positive_semidefinite",
    "estimate_asymptotic_covariance",
    "covariance_from_reduced_form",
]
