"""
Inference settings for SVAR-IV estimation.

Defaults follow the conventions of the Montiel Olea, Stock and Watson
replication code: a two-sided nominal confidence level, Newey-West
truncation lag, the variable used to normalize the shock and the number of
IRF horizons after impact.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from svariv.errors import InvalidInputError

# =============================================================================
# Inference Defaults
# =============================================================================

DEFAULT_CONFIDENCE = 0.95
DEFAULT_NW_LAGS = 0
DEFAULT_HORIZONS = 20
DEFAULT_NORM = 1
DEFAULT_SCALE = 1.0
DEFAULT_LAGS = 4

# =============================================================================
# Numerical Tolerances
# =============================================================================

# Relative eigenvalue floor below which a covariance matrix is rejected.
PSD_TOLERANCE = 1e-8

# Discriminants within this relative distance of zero are treated as zero.
DISCRIMINANT_RTOL = 1e-10

# Leading coefficients within this relative distance of zero are treated as zero.
LEADING_COEF_RTOL = 1e-12

# =============================================================================
# Output Configuration
# =============================================================================

DEFAULT_DATASET_NAME = "dataset"
DEFAULT_FIGURE_FORMAT = "png"
DEFAULT_TIME_LABEL = "period"


@dataclass(frozen=True)
class InferenceConfig:
    """Options shared by the HAC estimator and the MSW engine.

    ``norm`` is 1-based: the response of variable ``norm`` on impact is
    fixed to ``scale``.
    """

    confidence: float = DEFAULT_CONFIDENCE
    nw_lags: int = DEFAULT_NW_LAGS
    norm: int = DEFAULT_NORM
    scale: float = DEFAULT_SCALE
    horizons: int = DEFAULT_HORIZONS
    cholesky: bool = True

    def validate(self, n: Optional[int] = None) -> "InferenceConfig":
        if not (0.0 < float(self.confidence) < 1.0):
            raise InvalidInputError(f"confidence must lie in (0, 1), got {self.confidence}")
        if int(self.nw_lags) != self.nw_lags or self.nw_lags < 0:
            raise InvalidInputError(f"nw_lags must be a non-negative integer, got {self.nw_lags}")
        if int(self.horizons) != self.horizons or self.horizons < 0:
            raise InvalidInputError(f"horizons must be a non-negative integer, got {self.horizons}")
        if int(self.norm) != self.norm or self.norm < 1:
            raise InvalidInputError(f"norm must be a positive integer, got {self.norm}")
        if n is not None and self.norm > n:
            raise InvalidInputError(f"norm must lie in [1, {n}], got {self.norm}")
        if not math.isfinite(float(self.scale)) or float(self.scale) == 0.0:
            raise InvalidInputError(f"scale must be a finite nonzero number, got {self.scale}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "DEFAULT_CONFIDENCE",
    "DEFAULT_NW_LAGS",
    "DEFAULT_HORIZONS",
    "DEFAULT_NORM",
    "DEFAULT_SCALE",
    "DEFAULT_LAGS",
    "PSD_TOLERANCE",
    "DISCRIMINANT_RTOL",
    "LEADING_COEF_RTOL",
    "DEFAULT_DATASET_NAME",
    "DEFAULT_FIGURE_FORMAT",
    "DEFAULT_TIME_LABEL",
    "InferenceConfig",
]
