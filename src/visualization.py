"""
visualization.py - Consolidated matplotlib plotting helpers.

All plot functions follow a consistent style and return the Figure so
callers can save or display it as needed.
"""

import logging
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from src.evaluation import EvaluationResult
from src.features import ClusterFeatures

logger = logging.getLogger(__name__)

# Consistent figure style across all plots
plt.rcParams.update({"figure.dpi": 100, "axes.titlesize": 11})


def plot_elbow_curve(wss: Sequence[float], chosen_k: Optional[int] = None) -> plt.Figure:
    """
    Mean within-cluster sum of squares against k, with the chosen k marked.

    Parameters
    ----------
    wss : sequence of float
        Mean WSS for k = 1..len(wss).
    chosen_k : int, optional
        Draws a dashed vertical line at this k.

    Returns
    -------
    plt.Figure
    """
    ks = np.arange(1, len(wss) + 1)
    fig, ax = plt.subplots(figsize=(7, 5))
    ax.plot(ks, wss, marker="o")
    if chosen_k is not None:
        ax.axvline(chosen_k, color="green", linestyle="--", label=f"k = {chosen_k}")
        ax.legend()
    ax.set_xticks(ks)
    ax.set_xlabel("Number of clusters K")
    ax.set_ylabel("Total within-clusters sum of squares")
    ax.set_title("Elbow curve for identifying optimal no. of clusters")
    ax.grid(True, linestyle="--", alpha=0.6)
    fig.tight_layout()
    return fig


def plot_clustering(
    images: Sequence[np.ndarray],
    clusters: Sequence[ClusterFeatures],
    titles: Sequence[str],
) -> plt.Figure:
    """
    Input scans on the top row, their intensity cluster maps below.

    Cluster maps are coloured by intensity rank (darkest cluster first)
    so the same colour means the same tissue band in every panel.

    Returns
    -------
    plt.Figure
    """
    n = len(images)
    fig, axes = plt.subplots(2, n, figsize=(5 * n, 10), squeeze=False)

    for col, (image, feats, title) in enumerate(zip(images, clusters, titles)):
        axes[0, col].imshow(image, cmap="gray")
        axes[0, col].set_title(title)
        axes[0, col].axis("off")

        axes[1, col].imshow(feats.cluster_map, cmap="plasma", vmin=0, vmax=max(feats.n_clusters - 1, 1))
        axes[1, col].set_title(f"{title} (K-Means, k={feats.n_clusters})")
        axes[1, col].axis("off")

    axes[0, 0].set_ylabel("Input images")
    axes[1, 0].set_ylabel("Clustered images")
    fig.tight_layout()
    return fig


def plot_error_curve(
    errors: Sequence[float],
    title: str = "Validation error vs No. of iterations",
    ylabel: str = "Validation error",
    best_round: Optional[int] = None,
) -> plt.Figure:
    """Per-round boosting error, optionally marking the selected round."""
    rounds = np.arange(1, len(errors) + 1)
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(rounds, errors)
    if best_round is not None:
        ax.axvline(best_round, color="green", linestyle="--", label=f"best round = {best_round}")
        ax.legend()
    ax.set_xlabel("No. of iterations")
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    ax.grid(True, linestyle="--", alpha=0.6)
    fig.tight_layout()
    return fig


def plot_threshold_curve(sweep: pd.DataFrame, chosen: Optional[float] = None) -> plt.Figure:
    """Accuracy against decision threshold from ``threshold_sweep``."""
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(sweep["threshold"], sweep["accuracy"])
    if chosen is not None:
        ax.axvline(chosen, color="green", linestyle="--", label=f"threshold = {chosen:.2f}")
        ax.legend()
    ax.set_xlabel("Threshold")
    ax.set_ylabel("Accuracy")
    ax.set_title("Accuracy vs decision threshold")
    ax.grid(True, linestyle="--", alpha=0.6)
    fig.tight_layout()
    return fig


def plot_roc(result: EvaluationResult) -> plt.Figure:
    """ROC curve of one evaluated split with its AUC in the legend."""
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.plot(result.fpr, result.tpr, label=f"AUC = {result.auc:.3f}")
    ax.plot([0, 1], [0, 1], color="grey", linestyle="--", alpha=0.7)
    ax.set_xlim(0.0, 1.0)
    ax.set_ylim(0.0, 1.05)
    ax.set_xlabel("False positive rate (1 - specificity)")
    ax.set_ylabel("True positive rate (sensitivity)")
    ax.set_title(f"ROC Curve for {result.name} set")
    ax.legend(loc="lower right")
    ax.grid(True, linestyle="--", alpha=0.6)
    fig.tight_layout()
    return fig
