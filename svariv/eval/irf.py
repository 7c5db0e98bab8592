"""Moving-average representation, its derivatives, and Cholesky benchmark IRFs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from svariv.errors import DegenerateCovarianceError, InvalidInputError


def lag_blocks(AL: np.ndarray) -> list[np.ndarray]:
    """Split an n x np slope matrix into [A_1, ..., A_p]."""
    AL = np.asarray(AL, dtype=float)
    n = AL.shape[0]
    if AL.ndim != 2 or n == 0 or AL.shape[1] % n != 0:
        raise InvalidInputError(f"Slope matrix must be n x np, got shape {AL.shape}")
    p = AL.shape[1] // n
    return [AL[:, lag * n : (lag + 1) * n] for lag in range(p)]


def companion_matrix(AL: np.ndarray) -> np.ndarray:
    """np x np companion matrix of a VAR(p) with slopes [A_1 | ... | A_p]."""
    AL = np.asarray(AL, dtype=float)
    n = AL.shape[0]
    p = AL.shape[1] // n
    comp = np.zeros((n * p, n * p))
    comp[:n, :] = AL
    if p > 1:
        comp[n:, :-n] = np.eye(n * (p - 1))
    return comp


def _ma_matrices(lag_mats: Sequence[np.ndarray], max_horizon: int) -> np.ndarray:
    if max_horizon < 0:
        raise InvalidInputError("max_horizon must be >= 0")
    if not lag_mats:
        raise InvalidInputError("At least one lag matrix is required.")

    p = len(lag_mats)
    k = lag_mats[0].shape[0]
    psi = np.zeros((max_horizon + 1, k, k))
    psi[0] = np.eye(k)

    for h in range(1, max_horizon + 1):
        acc = np.zeros((k, k))
        for lag in range(1, min(h, p) + 1):
            acc += lag_mats[lag - 1] @ psi[h - lag]
        psi[h] = acc

    return psi


def ma_representation(AL: np.ndarray, horizons: int) -> np.ndarray:
    """Return C with shape (horizons+1, n, n); C[h] is the horizon-h MA coefficient."""
    return _ma_matrices(lag_blocks(AL), max_horizon=horizons)


def ma_derivatives(AL: np.ndarray, horizons: int, C: Optional[np.ndarray] = None) -> np.ndarray:
    """Jacobians G[h] = d vec(C_h) / d vec(AL)', shape (horizons+1, n^2, n^2 p).

    Uses G_h = sum_{m=0}^{h-1} kron(J (A_comp')^{h-1-m}, C_m) with
    J = [I_n, 0, ..., 0].
    """
    AL = np.asarray(AL, dtype=float)
    n = AL.shape[0]
    p = AL.shape[1] // n
    if C is None:
        C = ma_representation(AL, horizons)

    comp_t = companion_matrix(AL).T
    selector = np.hstack([np.eye(n), np.zeros((n, n * (p - 1)))])
    # selector @ (A_comp')^j for j = 0..horizons-1
    powers = [selector]
    for _ in range(1, horizons):
        powers.append(powers[-1] @ comp_t)

    G = np.zeros((horizons + 1, n * n, n * n * p))
    for h in range(1, horizons + 1):
        G[h] = sum(np.kron(powers[h - 1 - m], C[m]) for m in range(h))
    return G


@dataclass(frozen=True)
class CholeskyIRF:
    """Recursively identified IRFs, normalized like the SVAR-IV estimate."""

    irf: np.ndarray
    irf_cum: np.ndarray


def cholesky_impact(sigma: np.ndarray, norm_idx: int, scale: float) -> np.ndarray:
    """Column ``norm_idx`` of chol(Sigma), rescaled so entry ``norm_idx`` equals scale."""
    try:
        chol = np.linalg.cholesky(np.asarray(sigma, dtype=float))
    except np.linalg.LinAlgError as exc:
        raise DegenerateCovarianceError(f"Residual covariance is not positive definite: {exc}") from exc
    return scale * chol[:, norm_idx] / chol[norm_idx, norm_idx]


def cholesky_irf(C: np.ndarray, sigma: np.ndarray, norm_idx: int, scale: float) -> CholeskyIRF:
    """Apply the shared horizon recursion to the Cholesky impact vector."""
    impact = cholesky_impact(sigma, norm_idx, scale)
    irf = np.einsum("hij,j->ih", C, impact)
    return CholeskyIRF(irf=irf, irf_cum=np.cumsum(irf, axis=1))


__all__ = [
    "lag_blocks",
    "companion_matrix",
    "ma_representation",
    "ma_derivatives",
    "CholeskyIRF",
    "cholesky_impact",
    "cholesky_irf",
]
