"""
Diagnostics for fitted score mixtures.

Provides the plotting range of a mixture (confidence_interval), an
accumulating variant that widens over several models (IntervalTracker),
formatted text reports and a density plot.
"""

import math
from typing import Optional, Tuple

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Set backend (no GUI required)
import matplotlib.pyplot as plt

from .dataset import ScoreDataset
from .em_method import TrainingHistory
from .gmm_utils import MIN_PDF_VALUE
from .mixture import MixtureModel

# Output formatting
SECTION_WIDTH = 70
DEFAULT_N_SIGMA = 3.0
DEFAULT_N_PLOT_POINTS = 500


# ============================================================
# 1) Interval diagnostics
# ============================================================

def confidence_interval(model: MixtureModel, n_sigma: float = DEFAULT_N_SIGMA) -> Tuple[float, float]:
    """
    Range covering every component to within n_sigma standard deviations.

    Returns:
    --------
    (lo, hi) : tuple of float
        (min_y mean[y] - n_sigma * max_sigma, max_y mean[y] + n_sigma * max_sigma)
        where max_sigma = max_y sqrt(var[y])
    """
    if n_sigma < 0:
        raise ValueError(f"n_sigma must be >= 0, got {n_sigma}")
    max_sigma = float(np.sqrt(np.max(model.var)))
    lo = float(np.min(model.mean)) - n_sigma * max_sigma
    hi = float(np.max(model.mean)) + n_sigma * max_sigma
    return lo, hi


class IntervalTracker:
    """
    Running min/max of component means and max sigma across models.

    Each update() widens the tracked bounds; reset() forgets them. Useful
    to keep a common plotting range for a sequence of fitted mixtures.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.min_mean = math.inf
        self.max_mean = -math.inf
        self.max_sigma = 0.0

    def update(self, model: MixtureModel) -> None:
        self.min_mean = min(self.min_mean, float(np.min(model.mean)))
        self.max_mean = max(self.max_mean, float(np.max(model.mean)))
        self.max_sigma = max(self.max_sigma, float(np.sqrt(np.max(model.var))))

    def interval(self, n_sigma: float = DEFAULT_N_SIGMA) -> Tuple[float, float]:
        if n_sigma < 0:
            raise ValueError(f"n_sigma must be >= 0, got {n_sigma}")
        if math.isinf(self.min_mean):
            raise ValueError("IntervalTracker has not seen any model")
        return (
            self.min_mean - n_sigma * self.max_sigma,
            self.max_mean + n_sigma * self.max_sigma,
        )


# ============================================================
# 2) Output formatting functions
# ============================================================

def print_section_header(title: str, width: int = SECTION_WIDTH) -> None:
    """Print a section header with separator lines."""
    print("\n" + "="*width)
    print(title)
    print("="*width)


def print_subsection_header(title: str, width: int = SECTION_WIDTH) -> None:
    """Print a subsection header with separator lines."""
    print("\n" + "-"*width)
    print(title)
    print("-"*width)


def print_gmm_parameters(model: MixtureModel, title: str = "GMM PARAMETERS") -> None:
    """Print weight, mean and standard deviation of every component."""
    print_section_header(title)
    print(f"Number of components: {model.n_components}")
    print("\nComponent details:")
    for y in range(model.n_components):
        print(
            f"  Component {y}: w={model.weights[y]:.8f}, μ={model.mean[y]:.8f}, "
            f"σ={np.sqrt(model.var[y]):.8f}"
        )


def print_training_summary(history: TrainingHistory) -> None:
    """Print the log-likelihood and square error trajectory of train()."""
    print_section_header("EM TRAINING RESULTS")
    print(f"Single Gaussian log-likelihood: {history.init_log_likelihood:.10f}")
    print(f"Final log-likelihood:           {history.final_log_likelihood:.10f}")
    print(f"Iterations: {history.n_iter}")
    lls = np.asarray(history.log_likelihoods)
    if len(lls) > 1:
        # Allow for float rounding between iterations
        monotone = bool(np.all(np.diff(lls) >= -1e-8 * np.maximum(1.0, np.abs(lls[1:]))))
        print(f"Monotone log-likelihood: {'Yes' if monotone else 'No'}")
    if history.square_errors and not np.isnan(history.square_errors[-1]):
        print(f"Square error vs oracle: {history.init_square_error:.6e} -> {history.square_errors[-1]:.6e}")


def print_interval(lo: float, hi: float, n_sigma: float) -> None:
    print(f"{n_sigma:g}-sigma interval: [{lo:.6f}, {hi:.6f}]")


def print_plot_output(output_path: str) -> None:
    """Print plot output information."""
    print_section_header("PLOT OUTPUT")
    print(f"Plot saved: {output_path}.png")
    print("="*SECTION_WIDTH)


# ============================================================
# 3) Plot
# ============================================================

def plot_score_densities(
    model: MixtureModel,
    dataset: ScoreDataset,
    output_path: str,
    n_sigma: float = DEFAULT_N_SIGMA,
    n_points: int = DEFAULT_N_PLOT_POINTS,
    oracle: Optional[MixtureModel] = None,
) -> None:
    """
    Plot a score histogram against the fitted mixture.

    Generates a single PNG file with two subplots:
    - Top: Linear scale (histogram, weighted components, mixture)
    - Bottom: Logarithmic scale (shows tail behavior)

    The x range is confidence_interval(model, n_sigma), widened to the
    observed scores.

    Parameters:
    -----------
    model : MixtureModel
        Fitted mixture
    dataset : ScoreDataset
        Scores to histogram
    output_path : str
        Output file path without extension (will add .png)
    n_sigma : float, optional
        Width of the plotted range in standard deviations (default: 3)
    n_points : int, optional
        Number of grid points for the densities (default: 500)
    oracle : MixtureModel, optional
        Supervised reference mixture, drawn dashed if given
    """
    plt.rcParams['font.family'] = 'DejaVu Sans'

    lo, hi = confidence_interval(model, n_sigma)
    if len(dataset):
        lo = min(lo, float(np.min(dataset.scores)))
        hi = max(hi, float(np.max(dataset.scores)))
    z = np.linspace(lo, hi, n_points)
    f_mix = model.mixture_pdf(z)

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 10))
    colors = plt.cm.tab10(np.linspace(0, 1, max(model.n_components, 2)))

    for ax, log_scale in ((ax1, False), (ax2, True)):
        if len(dataset):
            ax.hist(dataset.scores, bins=50, range=(lo, hi), density=True,
                    color='lightgray', edgecolor='gray', alpha=0.7, label=f'Scores (n={len(dataset)})')
        for y in range(model.n_components):
            f_y = model.weights[y] * model.component_density(y, z)
            ax.plot(z, np.maximum(f_y, MIN_PDF_VALUE) if log_scale else f_y, ':',
                    linewidth=1.5, color=colors[y], alpha=0.8,
                    label=f'Component {y} (w={model.weights[y]:.3f})')
        ax.plot(z, np.maximum(f_mix, MIN_PDF_VALUE) if log_scale else f_mix,
                'r-', linewidth=2, label='GMM', alpha=0.8)
        if oracle is not None:
            f_oracle = oracle.mixture_pdf(z)
            ax.plot(z, np.maximum(f_oracle, MIN_PDF_VALUE) if log_scale else f_oracle,
                    'b--', linewidth=1.5, label='Oracle GMM', alpha=0.8)
        if log_scale:
            ax.set_yscale('log')
            ax.set_ylabel('Probability Density (log scale)', fontsize=12)
            ax.set_title('Score Density (Log Scale)', fontsize=12)
            ax.grid(True, alpha=0.3, which='both')
        else:
            ax.set_ylabel('Probability Density', fontsize=12)
            ax.set_title('Score Density (Linear Scale)', fontsize=12)
            ax.grid(True, alpha=0.3)
        ax.set_xlabel('score z', fontsize=12)
        ax.legend(fontsize=10)
        ax.set_xlim(lo, hi)

    fig.suptitle(
        f'Score GMM: K={model.n_components} | Log-likelihood: {model.log_likelihood(dataset):.6f}'
        if len(dataset) else f'Score GMM: K={model.n_components}',
        fontsize=13,
        y=0.995
    )

    plt.savefig(f'{output_path}.png', dpi=150, bbox_inches='tight')
    plt.close(fig)
