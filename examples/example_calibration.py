#!/usr/bin/env python3
"""
Example: calibrating classifier scores with the score GMM

This script generates margin scores for two classes, fits the mixture with a
fixed prior for class 0 and prints the class posteriors for a few scores.

Usage:
    python examples/example_calibration.py
"""

import sys
from pathlib import Path

# Add src directory to path to import score_gmm package
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import numpy as np
from score_gmm import (
    MixtureModel,
    generate_labeled_scores,
    fit_oracle,
    train,
    confidence_interval,
    print_gmm_parameters,
    print_training_summary,
)


def main():
    print("=" * 80)
    print("Score GMM calibration - example")
    print("=" * 80)

    # Class 0 scores are positive margins, class 1 negative
    data = generate_labeled_scores([1.0, -1.0], [0.25, 0.25], [300, 700], seed=7)
    class_prior0 = data.class_prior(0)
    print(f"\n{len(data)} scores, class_prior0={class_prior0:.3f}")

    oracle = MixtureModel(2, [class_prior0, 1.0 - class_prior0])
    fit_oracle(oracle, data)

    model = MixtureModel(2, [0.5, 0.5])
    history = train(model, data, class_prior0, n_iter=300, oracle=oracle)

    print_training_summary(history)
    print_gmm_parameters(model)
    print_gmm_parameters(oracle, title="ORACLE GMM PARAMETERS")

    lo, hi = confidence_interval(model, 3.0)
    print(f"\nPlotting range (3 sigma): [{lo:.3f}, {hi:.3f}]")

    print("\nP(class | score):")
    scores = np.array([-2.0, -0.5, 0.0, 0.5, 2.0])
    for z, post in zip(scores, model.class_posteriors(scores)):
        print(f"  z={z:+.2f}: " + ", ".join(f"P(y={y})={p:.4f}" for y, p in enumerate(post)))


if __name__ == "__main__":
    main()
