"""Tabular and JSON views of SVAR-IV inference results."""

from __future__ import annotations

from itertools import product
from typing import Sequence

import numpy as np
import pandas as pd

from svariv.eval.hac import AsymptoticCovariance
from svariv.eval.msw import MSWInference
from svariv.models.reduced_form import ReducedForm

LONG_COLUMNS = [
    "variable",
    "horizon",
    "response_type",
    "irf",
    "stderror",
    "dmethod_lower",
    "dmethod_upper",
    "msw_lower",
    "msw_upper",
    "msw_gap_lower",
    "msw_gap_upper",
    "msw_shape",
    "cholesky",
]


def irf_results_to_long_df(
    inference: MSWInference,
    var_names: Sequence[str],
    confidence: float,
) -> pd.DataFrame:
    """Convert plug-in, MSW and Cholesky IRFs to a long-form DataFrame."""
    plugin = inference.plugin
    n, n_hor = plugin.irf.shape
    if len(var_names) != n:
        raise ValueError(f"Expected {n} variable names, got {len(var_names)}.")

    rows = []
    views = {
        "irf": (plugin.irf, plugin.irf_stderror, inference.robust, False),
        "cumulative": (plugin.irf_cum, plugin.irf_cum_stderror, inference.robust_cum, True),
    }
    for response_type, (irf, se, robust, cumulative) in views.items():
        dm_lower, dm_upper = plugin.delta_method_band(confidence, cumulative=cumulative)
        chol = None
        if inference.cholesky is not None:
            chol = inference.cholesky.irf_cum if cumulative else inference.cholesky.irf
        for j, h in product(range(n), range(n_hor)):
            rows.append(
                {
                    "variable": var_names[j],
                    "horizon": int(h),
                    "response_type": response_type,
                    "irf": float(irf[j, h]),
                    "stderror": float(se[j, h]),
                    "dmethod_lower": float(dm_lower[j, h]),
                    "dmethod_upper": float(dm_upper[j, h]),
                    "msw_lower": float(robust.lower[j, h]),
                    "msw_upper": float(robust.upper[j, h]),
                    "msw_gap_lower": float(robust.gap_lower[j, h]),
                    "msw_gap_upper": float(robust.gap_upper[j, h]),
                    "msw_shape": str(robust.shape[j, h]),
                    "cholesky": float(chol[j, h]) if chol is not None else np.nan,
                }
            )
    return pd.DataFrame(rows, columns=LONG_COLUMNS)


def _shape_counts(shape: np.ndarray) -> dict:
    values, counts = np.unique(shape.astype(str), return_counts=True)
    return {str(v): int(c) for v, c in zip(values, counts)}


def inference_diagnostics(
    reduced_form: ReducedForm,
    covariance: AsymptoticCovariance,
    inference: MSWInference,
) -> dict:
    """JSON-ready summary of dimensions, instrument strength and set shapes."""
    robust = inference.robust
    return {
        "n_variables": reduced_form.n,
        "lag_order": reduced_form.p,
        "n_obs": reduced_form.n_obs,
        "n_usable": reduced_form.n_usable,
        "d": reduced_form.d,
        "dall": reduced_form.dall,
        "nw_lags": covariance.nw_lags,
        "confidence": robust.confidence,
        "critical_value": robust.critical_value,
        "first_stage_wald": robust.wald_statistic,
        "msw_bounded_expected": bool(robust.wald_statistic > robust.critical_value),
        "gamma": [float(g) for g in reduced_form.gamma],
        "sigma_min_eigenvalue": float(np.linalg.eigvalsh(reduced_form.sigma).min()),
        "msw_shape_counts": _shape_counts(robust.shape),
        "msw_cum_shape_counts": _shape_counts(inference.robust_cum.shape),
        "cholesky_computed": inference.cholesky is not None,
    }


__all__ = ["LONG_COLUMNS", "irf_results_to_long_df", "inference_diagnostics"]
