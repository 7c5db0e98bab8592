"""Configuration and constants for SVAR-IV inference."""

from .paths import PROJECT_ROOT, DATA_DIR, OUTPUT_DIR
from .settings import (
    DEFAULT_CONFIDENCE,
    DEFAULT_NW_LAGS,
    DEFAULT_HORIZONS,
    DEFAULT_NORM,
    DEFAULT_SCALE,
    DEFAULT_LAGS,
    PSD_TOLERANCE,
    DISCRIMINANT_RTOL,
    LEADING_COEF_RTOL,
    InferenceConfig,
)

__all__ = [
    "PROJECT_ROOT",
    "DATA_DIR",
    "OUTPUT_DIR",
    "DEFAULT_CONFIDENCE",
    "DEFAULT_NW_LAGS",
    "DEFAULT_HORIZONS",
    "DEFAULT_NORM",
    "DEFAULT_SCALE",
    "DEFAULT_LAGS",
    "PSD_TOLERANCE",
    "DISCRIMINANT_RTOL",
    "LEADING_COEF_RTOL",
    "InferenceConfig",
]
