"""Data loading and synthetic data generation."""

from .loader import load_svariv_data, validate_panel_and_instrument
from .simulate import SimulatedSVARIV, simulate_svar_iv

__all__ = [
    "load_svariv_data",
    "validate_panel_and_instrument",
    "SimulatedSVARIV",
    "simulate_svar_iv",
]
