"""
training.py - Gradient-boosted tumor classifier (XGBoost).

Training happens in two passes:

1. Round selection: boost on the training split for up to ``max_rounds``
   rounds while recording the classification error on the validation
   split after every round.  The first round with the minimum validation
   error is kept.
2. Final fit: boost again on train + validation combined for exactly
   that many rounds, with no validation monitoring.

Every call receives its seed through ``params`` so two runs on the same
feature table produce identical boosters and identical predictions.

References
----------
- XGBoost Python API: https://xgboost.readthedocs.io/en/stable/python/python_api.html
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import pandas as pd
import xgboost as xgb

from src.evaluation import best_threshold, threshold_sweep
from src.features import feature_columns, split_xy

logger = logging.getLogger(__name__)


@dataclass
class RoundSelection:
    """Outcome of the validation-monitored first pass."""
    best_round: int
    validation_error: list[float]
    train_error: list[float]
    booster: xgb.Booster = field(repr=False)


@dataclass
class TrainedModel:
    """Final booster plus the decision threshold applied to its scores."""
    booster: xgb.Booster = field(repr=False)
    num_rounds: int
    threshold: float
    validation_error: list[float] = field(default_factory=list)
    train_error: list[float] = field(default_factory=list)
    feature_names: list[str] = field(default_factory=list)

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        return predict_proba(self.booster, X, feature_names=self.feature_names or None)

    def predict(self, X: np.ndarray) -> np.ndarray:
        return (self.predict_proba(X) >= self.threshold).astype(int)


def build_params(model_cfg: dict[str, Any]) -> dict[str, Any]:
    """Translate the ``model`` config section into XGBoost booster params."""
    return {
        "eta": model_cfg["eta"],
        "max_depth": model_cfg["max_depth"],
        "objective": model_cfg["objective"],
        "eval_metric": "error",
        "seed": model_cfg["seed"],
    }


def _dmatrix(X: np.ndarray, y: Optional[np.ndarray] = None, feature_names=None) -> xgb.DMatrix:
    return xgb.DMatrix(np.asarray(X, dtype=np.float64), label=y, feature_names=feature_names)


def select_num_rounds(
    X_train: np.ndarray,
    y_train: np.ndarray,
    X_val: np.ndarray,
    y_val: np.ndarray,
    params: dict[str, Any],
    max_rounds: int = 2500,
    feature_names: Optional[list[str]] = None,
) -> RoundSelection:
    """
    Boost on the training split and pick the round count on validation.

    Parameters
    ----------
    X_train, y_train : np.ndarray
        Training features and binary labels.
    X_val, y_val : np.ndarray
        Validation features and binary labels.
    params : dict
        XGBoost booster parameters (see ``build_params``).
    max_rounds : int
        Upper bound on boosting rounds.

    Returns
    -------
    RoundSelection
        ``best_round`` is 1-based: the number of trees to keep.
    """
    dtrain = _dmatrix(X_train, y_train, feature_names)
    dval = _dmatrix(X_val, y_val, feature_names)

    evals_result: dict = {}
    booster = xgb.train(
        params,
        dtrain,
        num_boost_round=max_rounds,
        evals=[(dtrain, "train"), (dval, "eval")],
        evals_result=evals_result,
        verbose_eval=False,
    )

    val_error = [float(e) for e in evals_result["eval"]["error"]]
    train_error = [float(e) for e in evals_result["train"]["error"]]
    # np.argmin returns the first occurrence of the minimum
    best_round = int(np.argmin(val_error)) + 1

    logger.info(
        "Round selection: best round %d/%d (validation error %.4f)",
        best_round, max_rounds, val_error[best_round - 1],
    )
    return RoundSelection(
        best_round=best_round,
        validation_error=val_error,
        train_error=train_error,
        booster=booster,
    )


def fit_final_model(
    X: np.ndarray,
    y: np.ndarray,
    params: dict[str, Any],
    num_rounds: int,
    feature_names: Optional[list[str]] = None,
) -> tuple[xgb.Booster, list[float]]:
    """
    Boost on train + validation for exactly *num_rounds* rounds.

    Returns
    -------
    booster : xgb.Booster
    train_error : list[float]
        Training error after each round.
    """
    if num_rounds < 1:
        raise ValueError(f"num_rounds must be >= 1, got {num_rounds}.")

    dtrain = _dmatrix(X, y, feature_names)
    evals_result: dict = {}
    booster = xgb.train(
        params,
        dtrain,
        num_boost_round=num_rounds,
        evals=[(dtrain, "train")],
        evals_result=evals_result,
        verbose_eval=False,
    )
    train_error = [float(e) for e in evals_result["train"]["error"]]
    logger.info(
        "Final model: %d rounds on %d rows (training error %.4f)",
        num_rounds, len(y), train_error[-1],
    )
    return booster, train_error


def predict_proba(
    booster: xgb.Booster,
    X: np.ndarray,
    num_rounds: Optional[int] = None,
    feature_names: Optional[list[str]] = None,
) -> np.ndarray:
    """
    Tumor probability for each row of *X*.

    *num_rounds* limits prediction to the first trees of the booster;
    None uses all of them.
    """
    iteration_range = (0, num_rounds) if num_rounds is not None else (0, 0)
    return booster.predict(_dmatrix(X, feature_names=feature_names), iteration_range=iteration_range)


def train_classifier(
    table: pd.DataFrame,
    model_cfg: dict[str, Any],
    evaluation_cfg: dict[str, Any],
    n_clusters: int = 3,
) -> TrainedModel:
    """
    Run both training passes on a feature table and fix the threshold.

    Threshold policy (``evaluation_cfg["threshold_policy"]``):

    - "fixed": use ``evaluation_cfg["threshold"]`` (0.5 by default).
    - "validation": sweep thresholds on the validation split, scored by
      the round-selection booster truncated to the best round, and keep
      the threshold with the highest accuracy.

    Returns
    -------
    TrainedModel
    """
    params = build_params(model_cfg)
    names = feature_columns(n_clusters)

    X_train, y_train = split_xy(table, ["train"], n_clusters)
    X_val, y_val = split_xy(table, ["val"], n_clusters)
    selection = select_num_rounds(
        X_train, y_train, X_val, y_val, params,
        max_rounds=model_cfg["max_rounds"], feature_names=names,
    )

    policy = evaluation_cfg["threshold_policy"]
    if policy == "fixed":
        threshold = float(evaluation_cfg["threshold"])
    elif policy == "validation":
        val_prob = predict_proba(
            selection.booster, X_val, num_rounds=selection.best_round, feature_names=names,
        )
        sweep = threshold_sweep(y_val, val_prob)
        threshold = best_threshold(sweep)
        logger.info("Validation-tuned threshold: %.3f", threshold)
    else:
        raise ValueError(f"Unknown threshold policy '{policy}'.")

    X_train_val, y_train_val = split_xy(table, ["train", "val"], n_clusters)
    booster, train_error = fit_final_model(
        X_train_val, y_train_val, params, selection.best_round, feature_names=names,
    )

    return TrainedModel(
        booster=booster,
        num_rounds=selection.best_round,
        threshold=threshold,
        validation_error=selection.validation_error,
        train_error=train_error,
        feature_names=names,
    )
