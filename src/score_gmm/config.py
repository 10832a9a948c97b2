"""
Configuration loading for the score GMM command line.
"""

import json
from typing import Dict

from .diagnostics import DEFAULT_N_SIGMA


# ============================================================
# Default values
# ============================================================

DEFAULT_N_COMPONENTS = 2
DEFAULT_CONFIG_N_ITER = 300  # CLI default; train() itself defaults to 50
DEFAULT_CLASS_PRIOR0 = None  # None: estimated from the dataset labels
DEFAULT_REESTIMATE_WEIGHTS = False
DEFAULT_USE_ORACLE = True
DEFAULT_OUTPUT_PATH = "score_gmm"
DEFAULT_PLOT = True
DEFAULT_DATA = {
    "source": "generated",  # "generated" or "file"
    "path": None,
    "means": [1.0, -1.0],
    "variances": [0.25, 0.25],
    "counts": [500, 500],
    "seed": 1,
}


def load_config(config_path: str) -> Dict:
    """
    Load configuration from JSON file.

    Parameters:
    -----------
    config_path : str
        Path to JSON configuration file

    Returns:
    --------
    dict
        Configuration dictionary with default values applied
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError:
        print(f"Error: Configuration file '{config_path}' not found.")
        print("Using default parameters.")
        config = {}
    except json.JSONDecodeError as e:
        print(f"Error: Failed to parse JSON file: {e}")
        raise

    data = dict(DEFAULT_DATA)
    data.update(config.get("data", {}))

    # Apply defaults
    return {
        "n_components": config.get("n_components", DEFAULT_N_COMPONENTS),
        "class_prior0": config.get("class_prior0", DEFAULT_CLASS_PRIOR0),
        "n_iter": config.get("n_iter", DEFAULT_CONFIG_N_ITER),
        "reestimate_weights": config.get("reestimate_weights", DEFAULT_REESTIMATE_WEIGHTS),
        "use_oracle": config.get("use_oracle", DEFAULT_USE_ORACLE),
        "n_sigma": config.get("n_sigma", DEFAULT_N_SIGMA),
        "output_path": config.get("output_path", DEFAULT_OUTPUT_PATH),
        "plot": config.get("plot", DEFAULT_PLOT),
        "data": data,
    }


def validate_config(config: Dict) -> None:
    """
    Check value ranges of a loaded configuration.

    Raises:
    ------
    ValueError
        On the first invalid entry
    """
    K = config["n_components"]
    if not isinstance(K, int) or K < 2:
        raise ValueError(f"n_components must be an integer >= 2, got {K}")
    prior0 = config["class_prior0"]
    if prior0 is not None and not 0.0 < prior0 < 1.0:
        raise ValueError(f"class_prior0 must be in (0, 1), got {prior0}")
    n_iter = config["n_iter"]
    if not isinstance(n_iter, int) or n_iter < 0:
        raise ValueError(f"n_iter must be a non-negative integer, got {n_iter}")
    if config["n_sigma"] < 0:
        raise ValueError(f"n_sigma must be >= 0, got {config['n_sigma']}")

    data = config["data"]
    source = data["source"]
    if source == "file":
        if not data.get("path"):
            raise ValueError("data.path is required when data.source is 'file'")
    elif source == "generated":
        if not (len(data["means"]) == len(data["variances"]) == len(data["counts"]) == K):
            raise ValueError(f"data.means, data.variances and data.counts must have length n_components={K}")
    else:
        raise ValueError(f"data.source must be 'generated' or 'file', got '{source}'")
