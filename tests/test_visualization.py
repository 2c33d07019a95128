"""Smoke tests for src/visualization.py."""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

from src.evaluation import evaluate, threshold_sweep
from src.features import cluster_features
from src.visualization import (
    plot_clustering,
    plot_elbow_curve,
    plot_error_curve,
    plot_roc,
    plot_threshold_curve,
)


def test_elbow_curve_marks_chosen_k():
    fig = plot_elbow_curve([100, 40, 20, 15], chosen_k=3)
    ax = fig.axes[0]
    assert len(ax.lines) == 2
    plt.close(fig)


def test_clustering_has_two_rows():
    image = np.array([10] * 8 + [200] * 8, dtype=np.float64).reshape(4, 4)
    feats = cluster_features(image, n_clusters=2, n_init=2)
    fig = plot_clustering([image, image], [feats, feats], ["Non-tumor", "Tumor"])
    assert len(fig.axes) == 4
    plt.close(fig)


def test_error_and_threshold_curves():
    fig = plot_error_curve([0.3, 0.2, 0.2, 0.25], best_round=2)
    assert fig.axes[0].get_xlabel() == "No. of iterations"
    plt.close(fig)

    sweep = threshold_sweep([0, 1, 1], [0.2, 0.6, 0.9])
    fig = plot_threshold_curve(sweep, chosen=0.5)
    assert fig.axes[0].get_ylabel() == "Accuracy"
    plt.close(fig)


def test_roc_title_uses_split_name():
    fig = plot_roc(evaluate([0, 0, 1, 1], [0.1, 0.4, 0.35, 0.8], name="Test"))
    assert fig.axes[0].get_title() == "ROC Curve for Test set"
    plt.close(fig)
