"""
config.py - Configuration loader for the tumor classification pipeline.

Loads settings from config.yaml with sensible defaults so that no
path, seed or tuning parameter is hard-coded inside a module.
"""

import copy
import os
import yaml
from typing import Any

# Resolve the config file relative to the repo root, not the CWD,
# so imports work regardless of where the script is launched from.
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_CONFIG_PATH = os.path.join(_REPO_ROOT, "config.yaml")

THRESHOLD_POLICIES = ("fixed", "validation")
ELBOW_POLICIES = ("fixed", "max_curvature")

_DEFAULTS: dict[str, Any] = {
    "paths": {
        "tumor_dir": "data/raw/tumor",
        "non_tumor_dir": "data/raw/non_tumor",
        "augmented_dir": "data/augmented",
        "reports_dir": "reports",
        "features_csv": None,
    },
    "augmentation": {
        "image_format": "jpg",
    },
    "split": {
        "train_ratio": 0.7,
        "val_ratio": 0.15,
        "test_ratio": 0.15,
        "seed": 2,
    },
    "clustering": {
        "n_clusters": 3,
        "max_k": 10,
        "n_init": 50,
        "max_iter": 50,
        "random_state": 1,
        "elbow_policy": "fixed",
        "elbow_sample_limit": None,
    },
    "model": {
        "eta": 0.01,
        "max_depth": 6,
        "objective": "binary:logistic",
        "max_rounds": 2500,
        "seed": 1,
    },
    "evaluation": {
        "threshold": 0.5,
        "threshold_policy": "fixed",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base*, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validate_config(config: dict[str, Any]) -> None:
    """
    Reject settings that would silently produce a meaningless run.

    Raises
    ------
    ValueError
        If split ratios do not sum to 1, the cluster count is below 1,
        or a policy name is unknown.
    """
    split = config["split"]
    ratios = (split["train_ratio"], split["val_ratio"], split["test_ratio"])
    if any(r < 0 for r in ratios) or abs(sum(ratios) - 1.0) > 1e-6:
        raise ValueError(
            f"Split ratios must be non-negative and sum to 1, got {ratios}."
        )

    if config["clustering"]["n_clusters"] < 1:
        raise ValueError(
            f"n_clusters must be >= 1, got {config['clustering']['n_clusters']}."
        )

    policy = config["clustering"]["elbow_policy"]
    if policy not in ELBOW_POLICIES:
        raise ValueError(
            f"Unknown elbow policy '{policy}'. Choose from: {list(ELBOW_POLICIES)}"
        )

    policy = config["evaluation"]["threshold_policy"]
    if policy not in THRESHOLD_POLICIES:
        raise ValueError(
            f"Unknown threshold policy '{policy}'. "
            f"Choose from: {list(THRESHOLD_POLICIES)}"
        )


def load_config(config_path: str = _CONFIG_PATH) -> dict[str, Any]:
    """
    Load the YAML configuration file and merge it with built-in defaults.

    Parameters
    ----------
    config_path : str
        Path to config.yaml. Defaults to the repo-root config.yaml.

    Returns
    -------
    dict
        Merged and validated configuration dictionary.
    """
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f) or {}
    else:
        user_config = {}

    config = _deep_merge(copy.deepcopy(_DEFAULTS), user_config)
    validate_config(config)
    return config


def default_config() -> dict[str, Any]:
    """Return a fresh copy of the built-in defaults (ignores config.yaml)."""
    return copy.deepcopy(_DEFAULTS)


# Module-level singleton so callers can just do `from src.config import CONFIG`
CONFIG = load_config()
