"""
Log-domain arithmetic.

Probabilities are handled as logarithms throughout the mixture code so that
products of small densities never underflow. log(0) is represented by -inf.
"""

import numpy as np
from scipy.special import logsumexp

LOG_ZERO = -np.inf


def linear_to_log(x):
    """
    Convert a linear value to the log domain.

    Parameters:
    -----------
    x : float or np.ndarray
        Non-negative value(s)

    Returns:
    --------
    float or np.ndarray
        log(x), with log(0) = -inf

    Raises:
    ------
    ValueError
        If any value is negative
    """
    x = np.asarray(x, dtype=float)
    if np.any(x < 0):
        raise ValueError(f"Cannot take the log of a negative value: {x}")
    with np.errstate(divide="ignore"):
        out = np.log(x)
    return out[()] if out.ndim == 0 else out


def log_to_linear(x):
    """Convert a log-domain value back to linear: exp(x)."""
    out = np.exp(np.asarray(x, dtype=float))
    return out[()] if out.ndim == 0 else out


def add_as_linear(log_a, log_b):
    """
    Add two log-domain values as if they were linear.

    Computes log(exp(a) + exp(b)) in shift-by-max form, so large magnitudes
    neither overflow nor underflow. add_as_linear(-inf, -inf) is -inf.
    """
    a = np.asarray(log_a, dtype=float)
    b = np.asarray(log_b, dtype=float)
    hi = np.maximum(a, b)
    lo = np.minimum(a, b)
    # -inf - -inf would be NaN; a zero operand contributes nothing
    with np.errstate(invalid="ignore"):
        out = np.where(np.isneginf(hi), LOG_ZERO, hi + np.log1p(np.exp(lo - hi)))
    return out[()] if out.ndim == 0 else out


def log_sum_exp(values, axis=None):
    """n-ary add_as_linear over an axis."""
    return logsumexp(np.asarray(values, dtype=float), axis=axis)
