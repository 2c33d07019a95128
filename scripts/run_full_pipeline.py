"""
run_full_pipeline.py - End-to-end pipeline demonstration.

Generates synthetic MRI slices (if the tumor / non-tumor folders are
empty), runs every stage of the classification pipeline, saves
visualisations to reports/, and prints the confusion matrices and metrics.

Usage
-----
    python scripts/run_full_pipeline.py

To use a real dataset instead of generated samples, point
``paths.tumor_dir`` and ``paths.non_tumor_dir`` in config.yaml at your
image folders (or copy the images into data/raw/tumor and
data/raw/non_tumor) first.
"""

import logging
import os
import sys

# Ensure repo root is on sys.path regardless of launch directory
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

import matplotlib
matplotlib.use("Agg")  # non-interactive backend — works without a display

from src.config import CONFIG
from src.imaging import SUPPORTED_EXTENSIONS
from src.pipeline import run_pipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)-8s %(message)s",
)
logger = logging.getLogger(__name__)


def _resolve(path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(_REPO_ROOT, path)


def _has_images(folder: str) -> bool:
    return os.path.isdir(folder) and any(
        f.lower().endswith(SUPPORTED_EXTENSIONS) for f in os.listdir(folder)
    )


def _ensure_sample_data(tumor_dir: str, non_tumor_dir: str) -> None:
    """Generate synthetic data if either class folder has no images."""
    if _has_images(tumor_dir) and _has_images(non_tumor_dir):
        logger.info("Found images in %s and %s — skipping generation.", tumor_dir, non_tumor_dir)
        return

    logger.info("No images in the class folders — generating samples…")
    from scripts.generate_sample_data import generate  # noqa: E402 — lazy import
    generate(tumor_folder=tumor_dir, non_tumor_folder=non_tumor_dir)


def main() -> None:
    config = dict(CONFIG)
    config["paths"] = {
        key: (_resolve(value) if isinstance(value, str) else value)
        for key, value in CONFIG["paths"].items()
    }
    paths = config["paths"]

    print("=" * 60)
    print("STEP 1 — Prepare input data")
    print("=" * 60)
    _ensure_sample_data(paths["tumor_dir"], paths["non_tumor_dir"])
    print(f"  Tumor folder     : {paths['tumor_dir']}")
    print(f"  Non-tumor folder : {paths['non_tumor_dir']}")
    print()

    print("=" * 60)
    print("STEP 2 — Augment, split, cluster, train, evaluate")
    print("=" * 60)
    report = run_pipeline(config, reports_dir=paths["reports_dir"])
    print(report.summary())
    print()

    print("=" * 60)
    print("ALL PIPELINE STAGES COMPLETED SUCCESSFULLY")
    print("=" * 60)
    print(f"  Augmented images → {paths['augmented_dir']}")
    print(f"  Visualisations   → {paths['reports_dir']}")
    for path in report.figures:
        print(f"    {os.path.basename(path)}")
    print()


if __name__ == "__main__":
    main()
