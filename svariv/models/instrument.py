"""Instrument alignment and the residual-instrument cross-moment (Gamma)."""

from __future__ import annotations

from typing import Optional

import numpy as np

from svariv.errors import InvalidInputError


def usable_instrument(z, p: int, n_obs: Optional[int] = None) -> np.ndarray:
    """Drop the first ``p`` instrument values, for which no VAR residual exists."""
    z = np.asarray(z, dtype=float)
    if z.ndim == 2 and 1 in z.shape:
        z = z.reshape(-1)
    if z.ndim != 1:
        raise InvalidInputError(f"Instrument must be a single series, got shape {z.shape}")
    if n_obs is not None and len(z) != n_obs:
        raise InvalidInputError(
            f"Instrument length {len(z)} does not match the panel length {n_obs}."
        )
    if p < 0 or p >= len(z):
        raise InvalidInputError(f"Lag order {p} incompatible with instrument of length {len(z)}")
    return z[p:].copy()


def estimate_gamma(eta: np.ndarray, z_usable) -> np.ndarray:
    """Return Gamma = eta z / (T - p), one entry per reduced-form residual."""
    eta = np.asarray(eta, dtype=float)
    z_usable = np.asarray(z_usable, dtype=float).reshape(-1)
    if eta.ndim != 2:
        raise InvalidInputError(f"Residual matrix must be 2D (n x T-p), got shape {eta.shape}")
    if eta.shape[1] != len(z_usable):
        raise InvalidInputError(
            f"Residuals cover {eta.shape[1]} periods but the instrument covers {len(z_usable)}."
        )
    if not np.all(np.isfinite(z_usable)):
        raise InvalidInputError("Instrument contains non-finite values.")
    return eta @ z_usable / eta.shape[1]


__all__ = ["usable_instrument", "estimate_gamma"]
