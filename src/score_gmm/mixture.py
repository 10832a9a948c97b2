"""
One-dimensional diagonal Gaussian mixture over classifier scores.

The mixture models P(z | y) for a scalar margin score z with one Gaussian
component per class y:

    p(z) = Σ_y exp(logw_y) N(z; μ_y, σ²_y)

Component state is kept in numpy arrays and exposed read-only; every
variance write goes through set_variances(), which applies the variance
floor and refreshes the cached normalization constants in the same call.
"""

import copy
from typing import Sequence

import numpy as np

from .gmm_utils import (
    MIN_VARIANCE,
    gauss_norm_const,
    floor_variance,
    check_finite,
)
from .log_math import linear_to_log, log_to_linear, log_sum_exp


def _read_only(a: np.ndarray) -> np.ndarray:
    view = a.view()
    view.flags.writeable = False
    return view


def _scores_of(data) -> np.ndarray:
    """Accept a ScoreDataset or any array-like of scores."""
    scores = getattr(data, "scores", data)
    return np.atleast_1d(np.asarray(scores, dtype=float))


class MixtureModel:
    """
    1D Gaussian mixture with per-component log-weight, mean and variance.

    Parameters:
    -----------
    n_components : int
        Number of components (one per class), must be >= 1
    priors : sequence of float
        Initial linear mixing weights, shape (n_components,)
    min_variance : float, optional
        Variance floor (default: MIN_VARIANCE)
    """

    def __init__(self, n_components: int, priors: Sequence[float], min_variance: float = MIN_VARIANCE):
        if int(n_components) != n_components or n_components < 1:
            raise ValueError(f"n_components must be a positive integer, got {n_components}")
        if min_variance <= 0:
            raise ValueError(f"min_variance must be > 0, got {min_variance}")
        priors = np.asarray(priors, dtype=float)
        if priors.shape != (n_components,):
            raise ValueError(f"priors must have length {n_components}, got shape {priors.shape}")
        if not np.all(np.isfinite(priors)):
            raise ValueError(f"priors must be finite, got {priors}")

        self.n_components = int(n_components)
        self.min_variance = float(min_variance)
        self._log_weight = np.array(linear_to_log(priors), dtype=float).reshape(self.n_components)
        self._mean = np.zeros(self.n_components)
        self._var = np.ones(self.n_components)
        self._gconst = gauss_norm_const(self._var)

    # -------- state --------

    @property
    def log_weight(self) -> np.ndarray:
        return _read_only(self._log_weight)

    @property
    def weights(self) -> np.ndarray:
        return log_to_linear(self._log_weight)

    @property
    def mean(self) -> np.ndarray:
        return _read_only(self._mean)

    @property
    def var(self) -> np.ndarray:
        return _read_only(self._var)

    @property
    def gauss_norm_const(self) -> np.ndarray:
        return _read_only(self._gconst)

    def set_log_weights(self, log_weight) -> None:
        log_weight = np.asarray(log_weight, dtype=float)
        if log_weight.shape != (self.n_components,):
            raise ValueError(f"log_weight must have length {self.n_components}")
        if np.any(np.isnan(log_weight)):
            raise ValueError("log_weight contains NaN")
        self._log_weight = log_weight.copy()

    def set_means(self, mean) -> None:
        mean = np.asarray(mean, dtype=float)
        if mean.shape != (self.n_components,):
            raise ValueError(f"mean must have length {self.n_components}")
        self._mean = check_finite(mean.copy(), "mean")

    def set_variances(self, var) -> None:
        """Install new variances, floored, and recompute gauss_norm_const."""
        var = np.asarray(var, dtype=float)
        if var.shape != (self.n_components,):
            raise ValueError(f"var must have length {self.n_components}")
        check_finite(var, "variance")
        self._var = floor_variance(var, self.min_variance)
        self._gconst = gauss_norm_const(self._var)

    def snapshot(self) -> "MixtureModel":
        """Independent value copy of the current parameters."""
        return copy.deepcopy(self)

    # -------- densities --------

    def component_log_density(self, y: int, z):
        """log N(z; mean[y], var[y])."""
        z = np.asarray(z, dtype=float)
        diff = z - self._mean[y]
        out = -self._gconst[y] - diff * diff / (2.0 * self._var[y])
        return out[()] if out.ndim == 0 else out

    def component_density(self, y: int, z):
        return log_to_linear(self.component_log_density(y, z))

    def class_log_likelihoods(self, scores) -> np.ndarray:
        """
        Joint log-likelihoods log(w_y) + log N(z; μ_y, σ²_y).

        Returns:
        --------
        np.ndarray
            Shape (N, n_components)
        """
        z = _scores_of(scores)[:, None]
        diff = z - self._mean[None, :]
        log_comp = -self._gconst[None, :] - diff * diff / (2.0 * self._var[None, :])
        return self._log_weight[None, :] + log_comp

    def class_posteriors(self, scores) -> np.ndarray:
        """
        Posterior class probabilities P(y | z) for each score.

        Rows sum to 1. Shape (N, n_components).
        """
        log_num = self.class_log_likelihoods(scores)
        log_den = log_sum_exp(log_num, axis=1)[:, None]
        return check_finite(np.exp(log_num - log_den), "posterior")

    def log_likelihood(self, data) -> float:
        """
        Incomplete-data log-likelihood of a dataset.

        Σ_i log Σ_y exp(logw_y + log N(z_i; μ_y, σ²_y))

        Raises:
        ------
        GMMNumericError
            If the result is NaN or infinite
        """
        log_num = self.class_log_likelihoods(data)
        ll = float(np.sum(log_sum_exp(log_num, axis=1)))
        return check_finite(ll, "log-likelihood")

    def mixture_pdf(self, z) -> np.ndarray:
        """Weighted mixture density Σ_y w_y N(z; μ_y, σ²_y) at points z."""
        z = np.asarray(z, dtype=float)
        out = np.zeros_like(z)
        for y in range(self.n_components):
            out += log_to_linear(self._log_weight[y] + self.component_log_density(y, z))
        return out

    # -------- comparison --------

    def square_error(self, other: "MixtureModel") -> float:
        """Σ_y (mean[y] - other.mean[y])²."""
        if other.n_components != self.n_components:
            raise ValueError(
                f"Cannot compare mixtures with {self.n_components} and {other.n_components} components"
            )
        return float(np.sum((self._mean - other.mean) ** 2))

    def __repr__(self) -> str:
        return (
            f"MixtureModel(n_components={self.n_components}, "
            f"log_weight={self._log_weight.tolist()}, mean={self._mean.tolist()}, "
            f"var={self._var.tolist()})"
        )
