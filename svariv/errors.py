"""Exception and warning types raised by the SVAR-IV pipeline."""

from __future__ import annotations

import numpy as np


class SVARIVError(Exception):
    """Base class for fatal pipeline errors."""


class InvalidInputError(SVARIVError, ValueError):
    """Malformed or missing arguments, or inconsistent dimensions."""


class InsufficientObservationsError(InvalidInputError):
    """Too few observations for the requested lag order."""


class SingularDesignError(SVARIVError, np.linalg.LinAlgError):
    """Regressor Gram matrix is not invertible to working precision."""


class DegenerateCovarianceError(SVARIVError, np.linalg.LinAlgError):
    """Covariance estimate is not positive semi-definite within tolerance."""


class EmptyConfidenceSetWarning(UserWarning):
    """At least one variable/horizon has an empty weak-IV robust set."""


class UnboundedConfidenceSetWarning(UserWarning):
    """At least one variable/horizon has an unbounded weak-IV robust set."""


__all__ = [
    "SVARIVError",
    "InvalidInputError",
    "InsufficientObservationsError",
    "SingularDesignError",
    "DegenerateCovarianceError",
    "EmptyConfidenceSetWarning",
    "UnboundedConfidenceSetWarning",
]
