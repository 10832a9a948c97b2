"""
Score datasets consumed by the mixture estimator.

A dataset is a read-only sequence of scalar classifier scores, optionally
paired with gold class labels. Labels are only needed by the supervised
(oracle) fit; the EM procedures ignore them.
"""

from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

import numpy as np


class MarginProvider(Protocol):
    """Linear classifier that supplies one margin score per instance."""

    def get_number_of_instances(self) -> int: ...

    def get_score(self, instance: int) -> float: ...

    def get_gen_score(self, instance: int) -> float: ...

    def get_label(self, instance: int) -> int: ...


class ScoreDataset:
    """
    Scalar scores with optional gold labels.

    Parameters:
    -----------
    scores : array-like
        Classifier scores, shape (N,), all finite
    labels : array-like, optional
        Gold class indices, shape (N,), non-negative integers
    """

    def __init__(self, scores, labels=None):
        scores = np.asarray(scores, dtype=float).ravel()
        if not np.all(np.isfinite(scores)):
            raise ValueError("scores must be finite")
        self.scores = scores
        self.scores.flags.writeable = False

        if labels is None:
            self.labels = None
        else:
            labels = np.asarray(labels).ravel()
            if len(labels) != len(scores):
                raise ValueError(
                    f"labels ({len(labels)}) and scores ({len(scores)}) must have the same length"
                )
            if len(labels) and (not np.all(np.equal(np.mod(labels, 1), 0)) or np.any(labels < 0)):
                raise ValueError("labels must be non-negative integers")
            self.labels = labels.astype(int)
            self.labels.flags.writeable = False

    @classmethod
    def from_provider(cls, provider: MarginProvider, generated: bool = False) -> "ScoreDataset":
        """
        Collect scores and labels from a margin provider.

        generated selects the provider's synthetic scores (get_gen_score)
        instead of the computed margins (get_score).
        """
        n = provider.get_number_of_instances()
        score_of = provider.get_gen_score if generated else provider.get_score
        scores = [score_of(i) for i in range(n)]
        labels = [provider.get_label(i) for i in range(n)]
        return cls(scores, labels)

    def __len__(self) -> int:
        return len(self.scores)

    def number_of_instances(self) -> int:
        return len(self.scores)

    def score_of(self, instance: int) -> float:
        return float(self.scores[instance])

    def label_of(self, instance: int) -> int:
        if self.labels is None:
            raise ValueError("dataset has no labels")
        return int(self.labels[instance])

    @property
    def has_labels(self) -> bool:
        return self.labels is not None

    def class_prior(self, y: int) -> float:
        """Fraction of instances labeled y."""
        if self.labels is None:
            raise ValueError("dataset has no labels")
        if len(self.labels) == 0:
            raise ValueError("dataset is empty")
        return float(np.mean(self.labels == y))


def generate_labeled_scores(
    means: Sequence[float],
    variances: Sequence[float],
    counts: Sequence[int],
    seed: Optional[int] = 0,
    shuffle: bool = True,
) -> ScoreDataset:
    """
    Draw synthetic scores from one Gaussian per class.

    Parameters:
    -----------
    means : sequence of float
        Class means, shape (K,)
    variances : sequence of float
        Class variances, shape (K,), must be positive
    counts : sequence of int
        Number of instances per class, shape (K,)
    seed : int, optional
        Random seed for reproducibility (default: 0)
    shuffle : bool, optional
        Interleave the classes (default: True)

    Returns:
    --------
    ScoreDataset
        Scores labeled with the index of the generating class
    """
    means = np.asarray(means, dtype=float)
    variances = np.asarray(variances, dtype=float)
    counts = np.asarray(counts, dtype=int)
    if not (len(means) == len(variances) == len(counts)):
        raise ValueError("means, variances and counts must have the same length")
    if np.any(variances <= 0):
        raise ValueError("variances must be positive")
    if np.any(counts < 0):
        raise ValueError("counts must be non-negative")

    rng = np.random.default_rng(seed)
    scores = np.concatenate([
        rng.normal(loc=m, scale=np.sqrt(v), size=n) for m, v, n in zip(means, variances, counts)
    ])
    labels = np.repeat(np.arange(len(means)), counts)
    if shuffle:
        order = rng.permutation(len(scores))
        scores = scores[order]
        labels = labels[order]
    return ScoreDataset(scores, labels)


def load_scores_csv(path: Union[str, Path]) -> ScoreDataset:
    """
    Load a dataset from a text file of `score,label` rows.

    A single-column file is read as unlabeled scores. Lines starting with
    '#' are ignored.
    """
    data = np.loadtxt(path, delimiter=",", ndmin=2)
    if data.shape[1] == 1:
        return ScoreDataset(data[:, 0])
    if data.shape[1] != 2:
        raise ValueError(f"Expected 1 or 2 columns in {path}, got {data.shape[1]}")
    return ScoreDataset(data[:, 0], data[:, 1])
