"""
evaluation.py - Confusion-matrix statistics and ROC analysis.

Tumor (label 1) is the positive class throughout:

    accuracy    = (TP + TN) / (TP + FP + FN + TN)
    sensitivity = TP / (TP + FN)     fraction of tumors detected
    specificity = TN / (TN + FP)     fraction of healthy scans cleared

A ratio whose denominator is zero is reported as NaN rather than 0 so an
empty class is never mistaken for a perfect or a useless classifier.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix, roc_auc_score, roc_curve

logger = logging.getLogger(__name__)


def _ratio(num: float, den: float) -> float:
    return float(num) / float(den) if den > 0 else float("nan")


@dataclass
class ConfusionCounts:
    """2x2 confusion matrix with tumor as the positive class."""
    tp: int
    fp: int
    fn: int
    tn: int

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.fn + self.tn

    @property
    def accuracy(self) -> float:
        return _ratio(self.tp + self.tn, self.total)

    @property
    def sensitivity(self) -> float:
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def specificity(self) -> float:
        return _ratio(self.tn, self.tn + self.fp)

    def as_matrix(self) -> np.ndarray:
        """Rows = predicted (0, 1), columns = actual (0, 1)."""
        return np.array([[self.tn, self.fn], [self.fp, self.tp]])

    def table(self) -> str:
        return "\n".join([
            "              Actual 0  Actual 1",
            f"Predicted 0   {self.tn:8d}  {self.fn:8d}",
            f"Predicted 1   {self.fp:8d}  {self.tp:8d}",
        ])


@dataclass
class EvaluationResult:
    """Metrics of one split at one decision threshold."""
    name: str
    threshold: float
    counts: ConfusionCounts
    auc: float
    fpr: np.ndarray = field(repr=False)
    tpr: np.ndarray = field(repr=False)
    roc_thresholds: np.ndarray = field(repr=False)

    @property
    def accuracy(self) -> float:
        return self.counts.accuracy

    @property
    def sensitivity(self) -> float:
        return self.counts.sensitivity

    @property
    def specificity(self) -> float:
        return self.counts.specificity

    def summary(self) -> str:
        return "\n".join([
            f"Confusion matrix for {self.name} data (threshold {self.threshold:.2f}):",
            self.counts.table(),
            f"{self.name} accuracy    : {self.accuracy:.4f}",
            f"{self.name} sensitivity : {self.sensitivity:.4f}",
            f"{self.name} specificity : {self.specificity:.4f}",
            f"{self.name} AUC         : {self.auc:.4f}",
        ])


def confusion_counts(y_true: Sequence[int], y_pred: Sequence[int]) -> ConfusionCounts:
    """Count TP / FP / FN / TN for binary labels (1 = tumor)."""
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return ConfusionCounts(tp=int(tp), fp=int(fp), fn=int(fn), tn=int(tn))


def evaluate(
    y_true: Sequence[int],
    y_prob: Sequence[float],
    threshold: float = 0.5,
    name: str = "Test",
) -> EvaluationResult:
    """
    Binarise *y_prob* at *threshold* and compute every reported metric.

    Parameters
    ----------
    y_true : sequence of int
        Actual labels (0 = non-tumor, 1 = tumor).
    y_prob : sequence of float
        Predicted tumor probabilities.
    threshold : float
        Scores >= threshold are predicted as tumor.
    name : str
        Split label used in the printed summary.

    Raises
    ------
    ValueError
        If *y_true* does not contain both classes (ROC/AUC are undefined).
    """
    y_true = np.asarray(y_true, dtype=int)
    if np.unique(y_true).size < 2:
        raise ValueError(
            f"{name}: ROC/AUC needs both classes, got labels {np.unique(y_true).tolist()}."
        )
    y_prob = np.asarray(y_prob, dtype=np.float64)
    y_pred = (y_prob >= threshold).astype(int)

    counts = confusion_counts(y_true, y_pred)
    fpr, tpr, roc_thresholds = roc_curve(y_true, y_prob)
    auc = float(roc_auc_score(y_true, y_prob))

    result = EvaluationResult(
        name=name,
        threshold=float(threshold),
        counts=counts,
        auc=auc,
        fpr=fpr,
        tpr=tpr,
        roc_thresholds=roc_thresholds,
    )
    logger.info(
        "%s: accuracy=%.4f sensitivity=%.4f specificity=%.4f AUC=%.4f",
        name, result.accuracy, result.sensitivity, result.specificity, auc,
    )
    return result


def threshold_sweep(
    y_true: Sequence[int],
    y_prob: Sequence[float],
    thresholds: Optional[Sequence[float]] = None,
) -> pd.DataFrame:
    """
    Confusion-derived metrics at each candidate threshold.

    Defaults to 0.00, 0.01, ..., 1.00.

    Returns
    -------
    pd.DataFrame
        Columns: threshold, TP, FP, FN, TN, accuracy, sensitivity, specificity.
    """
    if thresholds is None:
        thresholds = np.round(np.linspace(0.0, 1.0, 101), 2)

    y_true = np.asarray(y_true, dtype=int)
    y_prob = np.asarray(y_prob, dtype=np.float64)

    rows = []
    for thr in thresholds:
        counts = confusion_counts(y_true, (y_prob >= thr).astype(int))
        rows.append({
            "threshold": float(thr),
            "TP": counts.tp,
            "FP": counts.fp,
            "FN": counts.fn,
            "TN": counts.tn,
            "accuracy": counts.accuracy,
            "sensitivity": counts.sensitivity,
            "specificity": counts.specificity,
        })
    return pd.DataFrame(rows)


def best_threshold(sweep: pd.DataFrame) -> float:
    """Threshold with the highest accuracy; the lowest such threshold on ties."""
    if sweep.empty:
        raise ValueError("Threshold sweep is empty.")
    # idxmax returns the first row holding the maximum
    return float(sweep.loc[sweep["accuracy"].idxmax(), "threshold"])
