"""HAC covariance, IRF recursions and weak-IV robust inference."""

from .hac import (
    AsymptoticCovariance,
    elimination_matrix,
    stacked_moments,
    newey_west_covariance,
    ensure_positive_semidefinite,
    estimate_asymptotic_covariance,
    covariance_from_reduced_form,
)
from .irf import (
    companion_matrix,
    ma_representation,
    ma_derivatives,
    CholeskyIRF,
    cholesky_irf,
)
from .msw import (
    ConfidenceSetShape,
    PluginResult,
    RobustConfidenceSet,
    MSWInference,
    critical_value,
    invert_ar_test,
    first_stage_wald,
    msw_inference,
)
from .reporting import irf_results_to_long_df, inference_diagnostics

__all__ = [
    "AsymptoticCovariance",
    "elimination_matrix",
    "stacked_moments",
    "newey_west_covariance",
    "ensure_positive_semidefinite",
    "estimate_asymptotic_covariance",
    "covariance_from_reduced_form",
    "companion_matrix",
    "ma_representation",
    "ma_derivatives",
    "CholeskyIRF",
    "cholesky_irf",
    "ConfidenceSetShape",
    "PluginResult",
    "RobustConfidenceSet",
    "MSWInference",
    "critical_value",
    "invert_ar_test",
    "first_stage_wald",
    "msw_inference",
    "irf_results_to_long_df",
    "inference_diagnostics",
]
