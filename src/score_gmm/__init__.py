"""Score GMM: a 1D Gaussian mixture calibration layer for classifier scores.

The mixture models the distribution of a linear classifier's margin score
conditioned on the class label and is fitted by EM with fixed class priors.
"""

from .log_math import (
    LOG_ZERO,
    linear_to_log,
    log_to_linear,
    add_as_linear,
    log_sum_exp,
)
from .gmm_utils import (
    MIN_VARIANCE,
    SPLIT_RATIO,
    GMMNumericError,
    gauss_norm_const,
)
from .mixture import MixtureModel
from .dataset import (
    MarginProvider,
    ScoreDataset,
    generate_labeled_scores,
    load_scores_csv,
)
from .em_method import (
    DEFAULT_N_ITER,
    TrainingHistory,
    fit_single_gaussian,
    split,
    set_class_priors,
    fit_oracle,
    em_step,
    train,
)
from .diagnostics import (
    IntervalTracker,
    confidence_interval,
    print_section_header,
    print_subsection_header,
    print_gmm_parameters,
    print_training_summary,
    print_interval,
    print_plot_output,
    plot_score_densities,
)
from .config import (
    DEFAULT_N_COMPONENTS,
    DEFAULT_CLASS_PRIOR0,
    DEFAULT_CONFIG_N_ITER,
    DEFAULT_N_SIGMA,
    load_config,
    validate_config,
)

__all__ = [
    "LOG_ZERO",
    "linear_to_log",
    "log_to_linear",
    "add_as_linear",
    "log_sum_exp",
    "MIN_VARIANCE",
    "SPLIT_RATIO",
    "GMMNumericError",
    "gauss_norm_const",
    "MixtureModel",
    "MarginProvider",
    "ScoreDataset",
    "generate_labeled_scores",
    "load_scores_csv",
    "DEFAULT_N_ITER",
    "TrainingHistory",
    "fit_single_gaussian",
    "split",
    "set_class_priors",
    "fit_oracle",
    "em_step",
    "train",
    "IntervalTracker",
    "confidence_interval",
    "print_section_header",
    "print_subsection_header",
    "print_gmm_parameters",
    "print_training_summary",
    "print_interval",
    "print_plot_output",
    "plot_score_densities",
    "DEFAULT_N_COMPONENTS",
    "DEFAULT_CLASS_PRIOR0",
    "DEFAULT_CONFIG_N_ITER",
    "DEFAULT_N_SIGMA",
    "load_config",
    "validate_config",
]
