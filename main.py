"""
Main execution script for score GMM fitting.

This script reads configuration from a JSON file, loads or generates a
dataset of labeled classifier scores, fits the score GMM by EM with fixed
class priors, compares it with the supervised (oracle) fit, and writes a
density plot.
"""

import argparse
import logging
import sys
import os
import time

# Add src directory to path to import score_gmm package
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src'))

from score_gmm import (
    load_config,
    validate_config,
    generate_labeled_scores,
    load_scores_csv,
    MixtureModel,
    fit_oracle,
    train,
    confidence_interval,
    print_section_header,
    print_subsection_header,
    print_gmm_parameters,
    print_training_summary,
    print_interval,
    print_plot_output,
    plot_score_densities,
)


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description="Fit a 1D Gaussian mixture to classifier scores with fixed class priors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --config configs/config_default.json
  python main.py --config configs/config_default.json --log-level DEBUG
        """
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to JSON configuration file. Example configs are in configs/ directory."
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for training progress (default: WARNING)"
    )

    # If no arguments provided, show help
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit(0)

    args = parser.parse_args()

    # If --config is not provided, show help
    if args.config is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Load configuration
    config = load_config(args.config)
    try:
        validate_config(config)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}")
        sys.exit(1)

    K = config["n_components"]
    n_iter = config["n_iter"]
    n_sigma = config["n_sigma"]
    output_path = config["output_path"]
    data = config["data"]

    print(f"Configuration file: {args.config}")

    # Load or generate the dataset
    if data["source"] == "file":
        dataset = load_scores_csv(data["path"])
        print(f"Loaded {len(dataset)} scores from {data['path']}")
    else:
        dataset = generate_labeled_scores(
            data["means"], data["variances"], data["counts"], seed=data["seed"]
        )
        print(f"Generated {len(dataset)} scores: means={data['means']}, variances={data['variances']}")

    class_prior0 = config["class_prior0"]
    if class_prior0 is None:
        if not dataset.has_labels:
            print("Error: class_prior0 is required for unlabeled data.")
            sys.exit(1)
        class_prior0 = dataset.class_prior(0)
        print(f"Estimated class_prior0 from labels: {class_prior0:.6f}")

    # Supervised reference
    oracle = None
    if config["use_oracle"] and dataset.has_labels:
        oracle = MixtureModel(K, [class_prior0] + [(1.0 - class_prior0) / (K - 1)] * (K - 1))
        try:
            fit_oracle(oracle, dataset)
        except ValueError as e:
            print(f"Error: Oracle fit failed: {e}")
            sys.exit(1)

    # Fit by EM (measure execution time)
    model = MixtureModel(K, [1.0 / K] * K)
    start_time = time.time()
    history = train(
        model, dataset, class_prior0,
        n_iter=n_iter,
        oracle=oracle,
        reestimate_weights=config["reestimate_weights"],
    )
    elapsed_time = time.time() - start_time

    print_training_summary(history)
    print_subsection_header("EXECUTION TIME")
    print(f"EM training:           {elapsed_time:>10.6f} seconds")

    print_gmm_parameters(model)
    if oracle is not None:
        print_gmm_parameters(oracle, title="ORACLE GMM PARAMETERS")

    print_section_header("CONFIDENCE INTERVAL")
    lo, hi = confidence_interval(model, n_sigma)
    print_interval(lo, hi, n_sigma)

    if config["plot"]:
        plot_score_densities(model, dataset, output_path, n_sigma=n_sigma, oracle=oracle)
        print_plot_output(output_path)


if __name__ == "__main__":
    main()
