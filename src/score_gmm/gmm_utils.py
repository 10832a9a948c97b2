"""
Common utilities for the score GMM.

This module provides shared numerical constants, the univariate Gaussian
helpers used by the mixture model, and the error type raised when a
computation produces non-finite values.
"""

import numpy as np


# ============================================================
# Numerical Constants
# ============================================================

MIN_VARIANCE = 0.01  # Variance floor for every component
SPLIT_RATIO = 0.1  # Mean offset (in standard deviations) applied by split()
LOG_2PI = float(np.log(2.0 * np.pi))
MIN_PDF_VALUE = 1e-10  # For log scale plotting


class GMMNumericError(ArithmeticError):
    """Exception raised when a density or likelihood is NaN or infinite."""
    pass


# ============================================================
# Gaussian helpers
# ============================================================

def gauss_norm_const(var):
    """
    Log normalization constant of a univariate Gaussian.

    Parameters:
    -----------
    var : float or np.ndarray
        Variance(s), must be positive

    Returns:
    --------
    float or np.ndarray
        0.5 * (log(2π) + log(var))
    """
    return 0.5 * (LOG_2PI + np.log(var))


def floor_variance(var, min_variance: float = MIN_VARIANCE) -> np.ndarray:
    """Clip variances from below at min_variance."""
    return np.maximum(np.asarray(var, dtype=float), min_variance)


def check_finite(value, what: str):
    """Raise GMMNumericError if value contains NaN or infinity."""
    if not np.all(np.isfinite(value)):
        raise GMMNumericError(f"{what} is not finite: {value}")
    return value
