"""
pipeline.py - End-to-end tumor classification orchestrator.

Runs the six stages in order:

    1. discover the tumor / non-tumor source images
    2. augment every image into 4 geometric variants
    3. split each class 70/15/15 into train / val / test
    4. extract k-means cluster features (elbow curve on train first)
    5. train the XGBoost classifier
    6. evaluate on train + validation and on test

Unlike a per-file processing loop there is no partial-failure mode: any
error aborts the run after logging which stage failed.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import matplotlib.pyplot as plt
import numpy as np

from src.augmentation import augment_folder
from src.clustering import elbow_curve, select_elbow_k
from src.config import CONFIG
from src.evaluation import EvaluationResult, evaluate, threshold_sweep
from src.features import (
    SPLIT_COLUMN,
    build_feature_table,
    cluster_features,
    save_feature_table,
    split_xy,
)
from src.imaging import list_image_files, load_grayscale
from src.splitting import DatasetSplit, split_classes
from src.training import TrainedModel, train_classifier
from src.visualization import (
    plot_clustering,
    plot_elbow_curve,
    plot_error_curve,
    plot_roc,
    plot_threshold_curve,
)

logger = logging.getLogger(__name__)

NON_TUMOR, TUMOR = 0, 1
CLASS_DIRS = {NON_TUMOR: "non_tumor", TUMOR: "tumor"}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class PipelineReport:
    """Aggregate report produced at the end of a run."""
    source_files: dict[int, int] = field(default_factory=dict)
    augmented_files: dict[int, int] = field(default_factory=dict)
    split_sizes: dict[int, dict[str, int]] = field(default_factory=dict)
    n_clusters: int = 0
    elbow_wss: Optional[list[float]] = None
    best_round: int = 0
    threshold: float = 0.5
    results: dict[str, EvaluationResult] = field(default_factory=dict)
    figures: list[str] = field(default_factory=list)
    elapsed_s: float = 0.0

    def summary(self) -> str:
        lines = [
            "=" * 50,
            "PIPELINE SUMMARY",
            "=" * 50,
            f"Source images (non-tumor/tumor) : {self.source_files.get(NON_TUMOR, 0)}/{self.source_files.get(TUMOR, 0)}",
            f"Augmented images                : {self.augmented_files.get(NON_TUMOR, 0)}/{self.augmented_files.get(TUMOR, 0)}",
        ]
        for label, sizes in sorted(self.split_sizes.items()):
            lines.append(f"Split sizes ({CLASS_DIRS[label]:9s})         : {sizes}")
        lines += [
            f"Clusters (k)                    : {self.n_clusters}",
            f"Optimal no. of iterations       : {self.best_round}",
            f"Decision threshold              : {self.threshold:.2f}",
            f"Total time                      : {self.elapsed_s:.2f}s",
        ]
        for result in self.results.values():
            lines.append("")
            lines.append(result.summary())
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Stage helpers
# ---------------------------------------------------------------------------

def _save(fig: plt.Figure, reports_dir: Optional[str], name: str, report: PipelineReport) -> None:
    if reports_dir is not None:
        path = os.path.join(reports_dir, name)
        fig.savefig(path, dpi=100, bbox_inches="tight")
        report.figures.append(path)
        logger.info("Saved figure: %s", path)
    plt.close(fig)


def _run_stage(stage: str, func, *args, **kwargs):
    try:
        return func(*args, **kwargs)
    except Exception:
        logger.error("Pipeline aborted during stage: %s", stage)
        raise


def discover_sources(paths_cfg: dict[str, Any]) -> dict[int, list[str]]:
    """List the source images of both classes; an empty class is fatal."""
    sources = {
        NON_TUMOR: list_image_files(paths_cfg["non_tumor_dir"]),
        TUMOR: list_image_files(paths_cfg["tumor_dir"]),
    }
    for label, files in sources.items():
        if not files:
            raise ValueError(f"No {CLASS_DIRS[label]} images found in {paths_cfg[CLASS_DIRS[label] + '_dir']}")
    return sources


def augment_sources(augmented_dir: str, paths_cfg: dict[str, Any], image_format: str) -> dict[int, list[str]]:
    """Augment both classes into ``<augmented_dir>/<class>`` and return the written paths."""
    augmented = {}
    for label, class_dir in CLASS_DIRS.items():
        target = os.path.join(augmented_dir, class_dir)
        augmented[label] = augment_folder(paths_cfg[f"{class_dir}_dir"], target, image_format=image_format)
    return augmented


def _example_clustering(splits: dict[int, DatasetSplit], clustering_cfg: dict[str, Any], n_clusters: int) -> plt.Figure:
    images, clusters, titles = [], [], []
    for label in (NON_TUMOR, TUMOR):
        path = splits[label].train[0]
        image = load_grayscale(path)
        images.append(image)
        clusters.append(cluster_features(
            image, n_clusters=n_clusters, random_state=clustering_cfg["random_state"],
            n_init=clustering_cfg["n_init"], max_iter=clustering_cfg["max_iter"],
        ))
        titles.append("Tumor" if label == TUMOR else "Non-tumor")
    return plot_clustering(images, clusters, titles)


# ---------------------------------------------------------------------------
# Core pipeline
# ---------------------------------------------------------------------------

def run_pipeline(
    config: Optional[dict[str, Any]] = None,
    reports_dir: Optional[str] = None,
    skip_augmentation: bool = False,
    compute_elbow: bool = True,
) -> PipelineReport:
    """
    Run every stage and return a report with per-split metrics.

    Parameters
    ----------
    config : dict, optional
        Full configuration.  Defaults to the loaded CONFIG.
    reports_dir : str, optional
        Where figures are saved.  None = figures are not written.
    skip_augmentation : bool
        Reuse an existing augmented directory instead of regenerating it.
    compute_elbow : bool
        Fit the elbow curve on the training images.  Forced on when the
        elbow policy is not "fixed".

    Returns
    -------
    PipelineReport
    """
    config = config or CONFIG
    paths_cfg = config["paths"]
    split_cfg = config["split"]
    clustering_cfg = config["clustering"]

    report = PipelineReport()
    start = time.time()
    if reports_dir is not None:
        os.makedirs(reports_dir, exist_ok=True)

    # 1. File discovery
    sources = _run_stage("file discovery", discover_sources, paths_cfg)
    report.source_files = {label: len(files) for label, files in sources.items()}
    logger.info("Found %d non-tumor and %d tumor source images.",
                report.source_files[NON_TUMOR], report.source_files[TUMOR])

    # 2. Augmentation
    augmented_dir = paths_cfg["augmented_dir"]
    if skip_augmentation:
        augmented = _run_stage("augmented file discovery", lambda: {
            label: list_image_files(os.path.join(augmented_dir, class_dir))
            for label, class_dir in CLASS_DIRS.items()
        })
    else:
        augmented = _run_stage(
            "augmentation", augment_sources, augmented_dir, paths_cfg,
            config["augmentation"]["image_format"],
        )
    report.augmented_files = {label: len(files) for label, files in augmented.items()}

    # 3. Dataset split
    splits = _run_stage(
        "dataset split", split_classes, augmented,
        seed=split_cfg["seed"],
        train_ratio=split_cfg["train_ratio"],
        val_ratio=split_cfg["val_ratio"],
        test_ratio=split_cfg["test_ratio"],
    )
    report.split_sizes = {label: split.sizes() for label, split in splits.items()}

    # 4. Feature extraction
    n_clusters = clustering_cfg["n_clusters"]
    if compute_elbow or clustering_cfg["elbow_policy"] != "fixed":
        train_files = splits[NON_TUMOR].train + splits[TUMOR].train
        wss = _run_stage(
            "elbow curve", elbow_curve, train_files,
            max_k=clustering_cfg["max_k"],
            random_state=clustering_cfg["random_state"],
            n_init=clustering_cfg["n_init"],
            max_iter=clustering_cfg["max_iter"],
            sample_limit=clustering_cfg["elbow_sample_limit"],
        )
        n_clusters = select_elbow_k(wss, policy=clustering_cfg["elbow_policy"], fixed_k=n_clusters)
        report.elbow_wss = wss.tolist()
        _save(plot_elbow_curve(wss, chosen_k=n_clusters), reports_dir, "elbow_curve.png", report)
    report.n_clusters = n_clusters
    logger.info("Using k=%d intensity clusters.", n_clusters)

    if reports_dir is not None:
        fig = _run_stage("clustering example", _example_clustering, splits, clustering_cfg, n_clusters)
        _save(fig, reports_dir, "clustering.png", report)

    table = _run_stage(
        "feature extraction", build_feature_table, splits,
        n_clusters=n_clusters,
        random_state=clustering_cfg["random_state"],
        n_init=clustering_cfg["n_init"],
        max_iter=clustering_cfg["max_iter"],
    )
    if paths_cfg.get("features_csv"):
        save_feature_table(table, paths_cfg["features_csv"])

    # 5. Model training
    model: TrainedModel = _run_stage(
        "model training", train_classifier, table,
        config["model"], config["evaluation"], n_clusters=n_clusters,
    )
    report.best_round = model.num_rounds
    report.threshold = model.threshold
    _save(
        plot_error_curve(model.validation_error, best_round=model.num_rounds),
        reports_dir, "validation_error.png", report,
    )
    _save(
        plot_error_curve(
            model.train_error,
            title="Training + validation error vs No. of iterations",
            ylabel="Training + validation error",
        ),
        reports_dir, "train_val_error.png", report,
    )

    # 6. Evaluation
    for name, data_sets in (("Training + validation", ["train", "val"]), ("Test", ["test"])):
        X, y = split_xy(table, data_sets, n_clusters)
        prob = model.predict_proba(X)
        result = _run_stage("evaluation", evaluate, y, prob, threshold=model.threshold, name=name)
        report.results[name] = result
        slug = "train_val" if data_sets != ["test"] else "test"
        _save(plot_roc(result), reports_dir, f"roc_{slug}.png", report)

    X_val, y_val = split_xy(table, ["val"], n_clusters)
    sweep = threshold_sweep(y_val, model.predict_proba(X_val))
    _save(plot_threshold_curve(sweep, chosen=model.threshold), reports_dir, "threshold_curve.png", report)

    report.elapsed_s = time.time() - start
    logger.info(
        "Pipeline complete: %d feature rows (%s) in %.2fs",
        len(table), np.unique(table[SPLIT_COLUMN]).tolist(), report.elapsed_s,
    )
    return report
