"""
Weak-IV Robust Inference for SVAR-IV Impulse Responses
======================================================

Plug-in IRFs with delta-method standard errors, and the confidence set of
Montiel Olea, Stock and Watson (MSW) obtained by inverting an
Anderson-Rubin type test.

For variable j and horizon h write the IRF as a ratio
lambda = a / b with a = e_j' C_h Gamma and b = Gamma[norm]. The candidate
lambda is not rejected when

    (T-p) (a - lambda b)^2 <= c (w_aa - 2 lambda w_ab + lambda^2 w_bb)

with c the chi2(1) critical value. The inequality is quadratic in lambda,
so the set is found in closed form. Its shape is bounded, empty, the real
line, or the union of two half-lines; a bounded set arises exactly when the
first-stage Wald statistic (T-p) b^2 / w_bb exceeds c.

References:
-----------
- Montiel Olea, J.L., Stock, J.H. & Watson, M.W. (2021). Inference in
  Structural Vector Autoregressions Identified with an External Instrument.
  Journal of Econometrics, 225(1), 74-87.
- Lutkepohl, H. (2005). New Introduction to Multiple Time Series Analysis.
  Springer. Section 3.7.
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Tuple

import numpy as np
from scipy import stats

from svariv.config.settings import DISCRIMINANT_RTOL, LEADING_COEF_RTOL, InferenceConfig
from svariv.errors import (
    EmptyConfidenceSetWarning,
    InvalidInputError,
    UnboundedConfidenceSetWarning,
)
from svariv.eval.hac import AsymptoticCovariance
from svariv.eval.irf import CholeskyIRF, cholesky_irf, ma_derivatives, ma_representation
from svariv.models.reduced_form import ReducedForm

logger = logging.getLogger(__name__)


class ConfidenceSetShape(str, Enum):
    BOUNDED = "bounded"
    EMPTY = "empty"
    REAL_LINE = "real_line"
    DISJOINT = "disjoint"  # (-inf, lower gap] U [upper gap, inf)
    HALF_LINE = "half_line"


UNBOUNDED_SHAPES = (
    ConfidenceSetShape.REAL_LINE.value,
    ConfidenceSetShape.DISJOINT.value,
    ConfidenceSetShape.HALF_LINE.value,
)


class ARInversion(NamedTuple):
    shape: ConfidenceSetShape
    lower: float
    upper: float
    gap_lower: float = math.nan
    gap_upper: float = math.nan


def critical_value(confidence: float) -> float:
    """chi2(1) critical value, i.e. the squared two-sided normal quantile."""
    return float(stats.norm.ppf(1 - (1 - confidence) / 2) ** 2)


def invert_ar_test(
    quad_a: float,
    quad_b: float,
    quad_c: float,
    discriminant_rtol: float = DISCRIMINANT_RTOL,
) -> ARInversion:
    """
    Solve quad_a x^2 + quad_b x + quad_c <= 0 for x.

    Parameters
    ----------
    quad_a, quad_b, quad_c : float
        Coefficients of the AR-test quadratic
    discriminant_rtol : float
        Discriminants within this fraction of max(quad_b^2, |4 quad_a quad_c|)
        are treated as zero

    Returns
    -------
    ARInversion
        Shape plus endpoints; ``lower``/``upper`` hold the interval (or its
        hull, +-inf when unbounded, NaN when empty), ``gap_lower`` and
        ``gap_upper`` the excluded interval of a disjoint set.
    """
    if quad_a == 0.0:
        if quad_b > 0:
            return ARInversion(ConfidenceSetShape.HALF_LINE, -math.inf, -quad_c / quad_b)
        if quad_b < 0:
            return ARInversion(ConfidenceSetShape.HALF_LINE, -quad_c / quad_b, math.inf)
        if quad_c <= 0:
            return ARInversion(ConfidenceSetShape.REAL_LINE, -math.inf, math.inf)
        return ARInversion(ConfidenceSetShape.EMPTY, math.nan, math.nan)

    disc = quad_b**2 - 4 * quad_a * quad_c
    if abs(disc) <= discriminant_rtol * max(quad_b**2, abs(4 * quad_a * quad_c)):
        disc = 0.0

    if quad_a > 0:
        if disc < 0:
            return ARInversion(ConfidenceSetShape.EMPTY, math.nan, math.nan)
        root = math.sqrt(disc)
        return ARInversion(
            ConfidenceSetShape.BOUNDED,
            (-quad_b - root) / (2 * quad_a),
            (-quad_b + root) / (2 * quad_a),
        )

    if disc <= 0:
        return ARInversion(ConfidenceSetShape.REAL_LINE, -math.inf, math.inf)
    root = math.sqrt(disc)
    return ARInversion(
        ConfidenceSetShape.DISJOINT,
        -math.inf,
        math.inf,
        gap_lower=(-quad_b + root) / (2 * quad_a),
        gap_upper=(-quad_b - root) / (2 * quad_a),
    )


@dataclass(frozen=True)
class PluginResult:
    """Plug-in IRFs (n x horizons+1) and delta-method standard errors."""

    irf: np.ndarray
    irf_stderror: np.ndarray
    irf_cum: np.ndarray
    irf_cum_stderror: np.ndarray

    def delta_method_band(self, confidence: float, cumulative: bool = False) -> Tuple[np.ndarray, np.ndarray]:
        z = math.sqrt(critical_value(confidence))
        irf = self.irf_cum if cumulative else self.irf
        se = self.irf_cum_stderror if cumulative else self.irf_stderror
        return irf - z * se, irf + z * se


@dataclass(frozen=True)
class RobustConfidenceSet:
    """MSW weak-IV robust confidence set, one cell per variable and horizon."""

    lower: np.ndarray
    upper: np.ndarray
    gap_lower: np.ndarray
    gap_upper: np.ndarray
    shape: np.ndarray
    confidence: float
    critical_value: float
    wald_statistic: float

    @property
    def is_empty(self) -> np.ndarray:
        return self.shape == ConfidenceSetShape.EMPTY.value

    @property
    def is_unbounded(self) -> np.ndarray:
        return np.isin(self.shape, UNBOUNDED_SHAPES)

    @property
    def is_bounded(self) -> np.ndarray:
        return self.shape == ConfidenceSetShape.BOUNDED.value

    def contains(self, values: np.ndarray) -> np.ndarray:
        """Elementwise membership of ``values`` (same shape as the bounds)."""
        values = np.asarray(values, dtype=float)
        inside_hull = (values >= self.lower) & (values <= self.upper)
        in_gap = (values > self.gap_lower) & (values < self.gap_upper)
        return inside_hull & ~in_gap & ~self.is_empty


@dataclass(frozen=True)
class MSWInference:
    plugin: PluginResult
    robust: RobustConfidenceSet
    robust_cum: RobustConfidenceSet
    cholesky: Optional[CholeskyIRF]

    @property
    def wald_statistic(self) -> float:
        return self.robust.wald_statistic

    @property
    def critical_value(self) -> float:
        return self.robust.critical_value


class RatioMoments(NamedTuple):
    a: np.ndarray  # (H+1, n) numerators e_j' C_h Gamma
    omega_aa: np.ndarray  # (H+1, n)
    omega_ab: np.ndarray  # (H+1, n)


def ratio_moments(C: np.ndarray, G: np.ndarray, gamma: np.ndarray, w_hat: np.ndarray, idx: int) -> RatioMoments:
    n_hor, n = C.shape[0], gamma.shape[0]
    grad_slopes = np.einsum("i,hijk->hjk", gamma, G.reshape(n_hor, n, n, -1))
    grad = np.concatenate([grad_slopes, C], axis=2)
    weighted = grad @ w_hat
    return RatioMoments(
        a=C @ gamma,
        omega_aa=np.sum(weighted * grad, axis=2),
        omega_ab=weighted[:, :, idx],
    )


def _wald(b: float, omega_bb: float, n_usable: int) -> float:
    if omega_bb <= 0:
        return math.inf
    return float(n_usable * b * b / omega_bb)


def first_stage_wald(gamma: np.ndarray, w_hat: np.ndarray, norm_idx: int, n_usable: int) -> float:
    """(T-p) Gamma[norm]^2 / Var(Gamma[norm]); MSW sets are bounded iff this exceeds c."""
    idx = w_hat.shape[0] - len(gamma) + norm_idx
    return _wald(float(gamma[norm_idx]), float(w_hat[idx, idx]), n_usable)


def plugin_irf(
    moments: RatioMoments,
    b: float,
    omega_bb: float,
    n_usable: int,
    scale: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Point IRF and delta-method standard error, both (n x H+1)."""
    ratio = moments.a / b
    variance = moments.omega_aa - 2 * ratio * moments.omega_ab + ratio**2 * omega_bb
    se = abs(scale) / abs(b) * np.sqrt(np.maximum(variance, 0.0) / n_usable)
    return (scale * ratio).T, se.T


def msw_confidence_set(
    moments: RatioMoments,
    b: float,
    omega_bb: float,
    n_usable: int,
    scale: float,
    confidence: float,
) -> RobustConfidenceSet:
    """Invert the AR test for every variable and horizon."""
    crit = critical_value(confidence)
    # Products are ordered so that a == b reproduces quad_b == -2 quad_a exactly.
    quad_a = n_usable * b * b - crit * omega_bb
    if abs(quad_a) <= LEADING_COEF_RTOL * max(n_usable * b * b, crit * abs(omega_bb)):
        quad_a = 0.0
    quad_b = -2 * n_usable * moments.a * b + 2 * crit * moments.omega_ab
    quad_c = n_usable * moments.a * moments.a - crit * moments.omega_aa

    n_hor, n = moments.a.shape
    lower = np.full((n, n_hor), np.nan)
    upper = np.full((n, n_hor), np.nan)
    gap_lower = np.full((n, n_hor), np.nan)
    gap_upper = np.full((n, n_hor), np.nan)
    shape = np.empty((n, n_hor), dtype=object)

    for h in range(n_hor):
        for j in range(n):
            cell = invert_ar_test(quad_a, float(quad_b[h, j]), float(quad_c[h, j]))
            lo, hi, glo, ghi = (scale * v for v in (cell.lower, cell.upper, cell.gap_lower, cell.gap_upper))
            if scale < 0:
                lo, hi, glo, ghi = hi, lo, ghi, glo
            lower[j, h], upper[j, h] = lo, hi
            gap_lower[j, h], gap_upper[j, h] = glo, ghi
            shape[j, h] = cell.shape.value

    wald = _wald(b, omega_bb, n_usable)
    return RobustConfidenceSet(
        lower=lower,
        upper=upper,
        gap_lower=gap_lower,
        gap_upper=gap_upper,
        shape=shape,
        confidence=float(confidence),
        critical_value=crit,
        wald_statistic=wald,
    )


def _report_irregular_sets(robust: RobustConfidenceSet, label: str) -> None:
    n_empty = int(robust.is_empty.sum())
    n_unbounded = int(robust.is_unbounded.sum())
    if n_empty:
        warnings.warn(
            f"MSW {label} confidence set is empty for {n_empty} variable/horizon cells.",
            EmptyConfidenceSetWarning,
            stacklevel=3,
        )
    if n_unbounded:
        warnings.warn(
            f"MSW {label} confidence set is unbounded for {n_unbounded} variable/horizon cells "
            f"(first-stage Wald {robust.wald_statistic:.3f} vs critical value {robust.critical_value:.3f}).",
            UnboundedConfidenceSetWarning,
            stacklevel=3,
        )
    logger.info("MSW %s set: %d empty, %d unbounded cells", label, n_empty, n_unbounded)


def msw_inference(
    reduced_form: ReducedForm,
    covariance: AsymptoticCovariance,
    confidence: float,
    norm: int,
    scale: float,
    horizons: int,
    cholesky: bool = True,
) -> MSWInference:
    """
    Standard and weak-IV robust inference on SVAR-IV impulse responses.

    Parameters
    ----------
    reduced_form : ReducedForm
        Reduced-form estimates including Gamma
    covariance : AsymptoticCovariance
        HAC covariance; only the (vec(A)', Gamma')' block is used
    confidence : float
        Nominal coverage in (0, 1)
    norm : int
        1-based index of the variable whose impact response equals ``scale``
    scale : float
        Size and sign of the shock
    horizons : int
        Number of horizons after impact
    cholesky : bool
        Also compute the recursively identified benchmark

    Returns
    -------
    MSWInference
    """
    InferenceConfig(confidence=confidence, norm=norm, scale=scale, horizons=horizons).validate(reduced_form.n)
    rf = reduced_form
    n, p, t = rf.n, rf.p, rf.n_usable
    if covariance.w_hat.shape != (rf.d, rf.d):
        raise InvalidInputError(
            f"Covariance block has shape {covariance.w_hat.shape}, expected {(rf.d, rf.d)}."
        )
    norm_idx = int(norm) - 1
    b = float(rf.gamma[norm_idx])
    if b == 0.0:
        raise InvalidInputError(
            f"Gamma is exactly zero for normalization variable {norm}; the IRF ratio is undefined."
        )
    idx = n * n * p + norm_idx
    w_hat = covariance.w_hat
    omega_bb = float(w_hat[idx, idx])

    C = ma_representation(rf.AL, horizons)
    G = ma_derivatives(rf.AL, horizons, C=C)
    moments = ratio_moments(C, G, rf.gamma, w_hat, idx)
    moments_cum = ratio_moments(np.cumsum(C, axis=0), np.cumsum(G, axis=0), rf.gamma, w_hat, idx)

    irf, se = plugin_irf(moments, b, omega_bb, t, scale)
    irf_cum, se_cum = plugin_irf(moments_cum, b, omega_bb, t, scale)
    plugin = PluginResult(irf=irf, irf_stderror=se, irf_cum=irf_cum, irf_cum_stderror=se_cum)

    robust = msw_confidence_set(moments, b, omega_bb, t, scale, confidence)
    robust_cum = msw_confidence_set(moments_cum, b, omega_bb, t, scale, confidence)
    logger.info(
        "First-stage Wald statistic %.3f (critical value %.3f, T-p=%d)",
        robust.wald_statistic,
        robust.critical_value,
        t,
    )
    _report_irregular_sets(robust, "IRF")
    _report_irregular_sets(robust_cum, "cumulative IRF")

    chol = cholesky_irf(C, rf.sigma, norm_idx, scale) if cholesky else None
    return MSWInference(plugin=plugin, robust=robust, robust_cum=robust_cum, cholesky=chol)


__all__ = [
    "ConfidenceSetShape",
    "ARInversion",
    "critical_value",
    "invert_ar_test",
    "PluginResult",
    "RobustConfidenceSet",
    "MSWInference",
    "first_stage_wald",
    "plugin_irf",
    "msw_confidence_set",
    "msw_inference",
]
