"""Reduced-form estimation and instrument moments."""

from .instrument import estimate_gamma, usable_instrument
from .reduced_form import (
    ReducedForm,
    VAROLSFit,
    fit_var_ols,
    estimate_reduced_form,
    reduced_form_from_mapping,
    reduced_form_to_mapping,
    save_reduced_form,
    load_reduced_form,
)

__all__ = [
    "estimate_gamma",
    "usable_instrument",
    "ReducedForm",
    "VAROLSFit",
    "fit_var_ols",
    "estimate_reduced_form",
    "reduced_form_from_mapping",
    "reduced_form_to_mapping",
    "save_reduced_form",
    "load_reduced_form",
]
