"""
EM Method - fitting a 1D score GMM with fixed class priors

This module estimates the parameters of a MixtureModel from a dataset of
classifier scores. The standard pipeline (train) is:

1. Fit one Gaussian to all scores and replicate it over every component
2. Split the collapsed mixture by moving component means apart
3. Fix the mixing weights from an external prior for class 0
4. Refine means and variances with a fixed number of soft EM iterations

A supervised fit from gold labels (fit_oracle) provides the reference model
that the unsupervised fit is compared against through square_error().
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .dataset import ScoreDataset
from .gmm_utils import SPLIT_RATIO
from .log_math import linear_to_log
from .mixture import MixtureModel

logger = logging.getLogger(__name__)

# ============================================================
# Constants
# ============================================================

DEFAULT_N_ITER = 50


@dataclass
class TrainingHistory:
    """
    Progress values recorded by train().

    Attributes:
    -----------
    init_log_likelihood : float
        Log-likelihood of the collapsed single-Gaussian mixture
    init_square_error : float
        Square error against the oracle after initialization (NaN without oracle)
    log_likelihoods : list of float
        Log-likelihood after each EM iteration
    square_errors : list of float
        Square error against the oracle after each EM iteration (NaN without oracle)
    """
    init_log_likelihood: float = float("nan")
    init_square_error: float = float("nan")
    log_likelihoods: List[float] = field(default_factory=list)
    square_errors: List[float] = field(default_factory=list)

    @property
    def n_iter(self) -> int:
        return len(self.log_likelihoods)

    @property
    def final_log_likelihood(self) -> float:
        if not self.log_likelihoods:
            return self.init_log_likelihood
        return self.log_likelihoods[-1]


def _scores(dataset: ScoreDataset) -> np.ndarray:
    z = np.asarray(dataset.scores, dtype=float)
    if len(z) == 0:
        raise ValueError("dataset has no instances")
    return z


def _check_class_prior0(class_prior0: float) -> float:
    class_prior0 = float(class_prior0)
    if not 0.0 < class_prior0 < 1.0:
        raise ValueError(f"class_prior0 must be in (0, 1), got {class_prior0}")
    return class_prior0


# ============================================================
# Initialization
# ============================================================

def fit_single_gaussian(model: MixtureModel, dataset: ScoreDataset) -> None:
    """
    Collapse the mixture onto the maximum-likelihood single Gaussian.

    Every component receives the sample mean and (biased) sample variance of
    all scores, labels ignored, and log-weight 0.
    """
    z = _scores(dataset)
    K = model.n_components
    mu = float(np.mean(z))
    var = float(np.mean((z - mu) ** 2))

    model.set_means(np.full(K, mu))
    model.set_variances(np.full(K, var))
    model.set_log_weights(np.zeros(K))
    logger.debug(f"Single Gaussian: mean={mu:.6f}, var={model.var[0]:.6f}")


def split(model: MixtureModel, ratio: float = SPLIT_RATIO) -> None:
    """
    Move the components of a collapsed mixture apart.

    All components start from component 0. Means are offset by
    ratio * sigma * linspace(+1, -1, K): with two components, component 0
    moves up by ratio * sigma and component 1 down by the same amount; with
    more components the offsets are evenly spaced over the same range.
    Variances are left identical and every log-weight becomes
    log_weight[0] - log(K), i.e. log_weight[0] + log(0.5) for K=2.
    """
    K = model.n_components
    mu0 = model.mean[0]
    var0 = model.var[0]
    offsets = ratio * np.sqrt(var0) * np.linspace(1.0, -1.0, K)

    model.set_means(mu0 + offsets)
    model.set_variances(np.full(K, var0))
    model.set_log_weights(np.full(K, model.log_weight[0] - np.log(K)))
    logger.debug(f"Split means={model.mean.tolist()}, var={model.var.tolist()}")


def set_class_priors(model: MixtureModel, class_prior0: float) -> None:
    """
    Fix the mixing weights from the prior of class 0.

    log_weight[0] = log(class_prior0); the remaining mass is shared
    uniformly by the other components.
    """
    class_prior0 = _check_class_prior0(class_prior0)
    K = model.n_components
    if K < 2:
        raise ValueError("class priors require at least 2 components")
    prior_rest = linear_to_log(1.0 - class_prior0) - linear_to_log(K - 1)
    log_weight = np.full(K, prior_rest)
    log_weight[0] = linear_to_log(class_prior0)
    model.set_log_weights(log_weight)


# ============================================================
# Supervised fit
# ============================================================

def fit_oracle(model: MixtureModel, dataset: ScoreDataset) -> None:
    """
    Fit each component to the scores of its gold class.

    mean[y] and the biased variance[y] are computed from the instances
    labeled y. A class without instances gets mean 0 and the variance
    floor. Log-weights are left unchanged.

    Raises:
    ------
    ValueError
        If the dataset has no labels or a label is >= n_components
    """
    if not dataset.has_labels:
        raise ValueError("fit_oracle requires a labeled dataset")
    z = _scores(dataset)
    labels = dataset.labels
    K = model.n_components
    if np.any(labels >= K):
        raise ValueError(f"labels must be < n_components ({K}), got max {labels.max()}")

    nex = np.bincount(labels, minlength=K).astype(float)
    sums = np.bincount(labels, weights=z, minlength=K)
    mu = np.divide(sums, nex, out=np.zeros(K), where=nex > 0)

    sq = np.bincount(labels, weights=(z - mu[labels]) ** 2, minlength=K)
    var = np.divide(sq, nex, out=np.full(K, model.min_variance), where=nex > 0)

    model.set_means(mu)
    model.set_variances(var)
    logger.info(f"Oracle fit: log-likelihood={model.log_likelihood(z):.6f}, n_instances={len(z)}")


# ============================================================
# Soft EM
# ============================================================

def em_step(
    model: MixtureModel,
    dataset: ScoreDataset,
    previous: Optional[MixtureModel] = None,
    reestimate_weights: bool = False,
) -> np.ndarray:
    """
    One soft EM iteration for means and variances.

    Responsibilities r_iy = P(y | z_i) are computed under `previous` (a
    snapshot of `model` taken before the step when not given), never under
    the parameters being written. Then:

        N_y  = Σ_i r_iy
        μ_y  = (1/N_y) Σ_i r_iy z_i
        σ²_y = (1/N_y) Σ_i r_iy (z_i - μ_y)²      (new means, floored)

    A component with N_y = 0 gets mean 0 and the variance floor.
    Log-weights are kept unless reestimate_weights is set, in which case
    log_weight[y] = log(N_y / N).

    Returns:
    --------
    np.ndarray
        Responsibility mass N_y per component, shape (K,)
    """
    z = _scores(dataset)
    if previous is None:
        previous = model.snapshot()
    K = model.n_components

    # -------- E-step: responsibilities under the previous parameters --------
    r = previous.class_posteriors(z)  # shape (N, K)
    nk = r.sum(axis=0)

    # -------- M-step: means --------
    mu = np.divide(r.T @ z, nk, out=np.zeros(K), where=nk > 0)

    # -------- M-step: variances around the new means --------
    diff2 = (z[:, None] - mu[None, :]) ** 2
    var = np.divide((r * diff2).sum(axis=0), nk, out=np.full(K, model.min_variance), where=nk > 0)

    model.set_means(mu)
    model.set_variances(var)
    if reestimate_weights:
        model.set_log_weights(linear_to_log(nk / len(z)))
    return nk


# ============================================================
# Training pipeline
# ============================================================

def train(
    model: MixtureModel,
    dataset: ScoreDataset,
    class_prior0: float,
    n_iter: int = DEFAULT_N_ITER,
    oracle: Optional[MixtureModel] = None,
    reestimate_weights: bool = False,
) -> TrainingHistory:
    """
    Fit a mixture to unlabeled scores with fixed class priors.

    Parameters:
    -----------
    model : MixtureModel
        Mixture to fit in place, must have at least 2 components
    dataset : ScoreDataset
        Scores to fit (labels are not used)
    class_prior0 : float
        Prior probability of class 0, in (0, 1)
    n_iter : int, optional
        Number of EM iterations, run unconditionally (default: 50)
    oracle : MixtureModel, optional
        Reference model for square-error monitoring
    reestimate_weights : bool, optional
        Let EM re-estimate the weights instead of keeping the priors (default: False)

    Returns:
    --------
    TrainingHistory
        Log-likelihood and square error after initialization and each iteration

    Raises:
    ------
    ValueError
        On an invalid prior, iteration count, component count or empty dataset
    GMMNumericError
        If a log-likelihood becomes NaN or infinite
    """
    class_prior0 = _check_class_prior0(class_prior0)
    if int(n_iter) != n_iter or n_iter < 0:
        raise ValueError(f"n_iter must be a non-negative integer, got {n_iter}")
    if model.n_components < 2:
        raise ValueError("train requires at least 2 components")
    if oracle is not None and oracle.n_components != model.n_components:
        raise ValueError("oracle must have the same number of components as model")
    z = _scores(dataset)

    history = TrainingHistory()

    fit_single_gaussian(model, dataset)
    history.init_log_likelihood = model.log_likelihood(z)
    if oracle is not None:
        history.init_square_error = model.square_error(oracle)
    logger.info(
        f"Single Gaussian: log-likelihood={history.init_log_likelihood:.6f}, "
        f"n_instances={len(z)}, square_error={history.init_square_error:.6f}"
    )

    split(model)
    set_class_priors(model, class_prior0)

    for it in range(int(n_iter)):
        previous = model.snapshot()
        em_step(model, dataset, previous, reestimate_weights=reestimate_weights)
        ll = model.log_likelihood(z)
        sqerr = model.square_error(oracle) if oracle is not None else float("nan")
        history.log_likelihoods.append(ll)
        history.square_errors.append(sqerr)
        logger.debug(f"EM iteration {it + 1}/{n_iter}: log-likelihood={ll:.6f}, square_error={sqerr:.6f}")

    logger.info(
        f"EM finished after {history.n_iter} iterations: "
        f"log-likelihood={history.final_log_likelihood:.6f}, means={model.mean.tolist()}"
    )
    return history
