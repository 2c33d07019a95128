"""
features.py - Per-image k-means cluster features.

Each scan becomes a fixed-width row of 4k numbers (12 for k=3):

    c1_size .. ck_size               pixel count per cluster
    c1_intensity .. ck_intensity     mean intensity per cluster
    c1_x_centroid .. ck_x_centroid   mean column index per cluster
    c1_y_centroid .. ck_y_centroid   mean row index per cluster

K-Means numbers its clusters arbitrarily, so the clusters are sorted by
ascending mean intensity before emitting the row: c1 is always the darkest
cluster and ck the brightest.  Without this, column "c3_intensity" would
mean different things for different images and the classifier could not
learn anything from it.

Rows are produced by a pure function of (image, label, split); the caller
collects them into a pandas DataFrame once all rows exist.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from src.clustering import fit_intensity_kmeans, image_to_vector
from src.imaging import load_grayscale
from src.splitting import SPLIT_NAMES, DatasetSplit

logger = logging.getLogger(__name__)

SPLIT_COLUMN = "data_set"
LABEL_COLUMN = "tumor"
FILE_COLUMN = "file"

_FEATURE_GROUPS = ("size", "intensity", "x_centroid", "y_centroid")


def feature_columns(n_clusters: int = 3) -> list[str]:
    """Feature column names, grouped by statistic then cluster rank."""
    return [
        f"c{i}_{group}"
        for group in _FEATURE_GROUPS
        for i in range(1, n_clusters + 1)
    ]


FEATURE_COLUMNS = feature_columns(3)


@dataclass
class ClusterFeatures:
    """Cluster statistics of one image, ordered by ascending intensity."""
    sizes: np.ndarray
    intensities: np.ndarray
    x_centroids: np.ndarray
    y_centroids: np.ndarray
    cluster_map: np.ndarray = field(repr=False)

    @property
    def n_clusters(self) -> int:
        return len(self.sizes)

    def as_vector(self) -> np.ndarray:
        return np.concatenate([
            self.sizes.astype(np.float64),
            self.intensities,
            self.x_centroids,
            self.y_centroids,
        ])


@dataclass
class FeatureRow:
    """One row of the feature table."""
    data_set: str
    features: ClusterFeatures
    label: int
    file: str = ""

    def as_record(self) -> dict:
        record = {SPLIT_COLUMN: self.data_set}
        record.update(zip(feature_columns(self.features.n_clusters), self.features.as_vector()))
        record[LABEL_COLUMN] = self.label
        record[FILE_COLUMN] = self.file
        return record


def cluster_features(
    image: np.ndarray,
    n_clusters: int = 3,
    random_state: int = 1,
    n_init: int = 50,
    max_iter: int = 50,
) -> ClusterFeatures:
    """
    Cluster the pixel intensities of *image* and summarise each cluster.

    Parameters
    ----------
    image : np.ndarray
        2-D greyscale array.
    n_clusters, random_state, n_init, max_iter
        Passed to ``fit_intensity_kmeans``.

    Returns
    -------
    ClusterFeatures
        Sizes, mean intensities and (x, y) centroids sorted by ascending
        mean intensity.  ``cluster_map`` is relabelled to the same order
        (0 = darkest).
    """
    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 2:
        raise ValueError(f"Expected a 2-D greyscale image, got shape {image.shape}.")

    vector = image_to_vector(image)
    kmeans = fit_intensity_kmeans(
        vector, n_clusters=n_clusters, random_state=random_state,
        n_init=n_init, max_iter=max_iter,
    )
    labels = kmeans.labels_
    values = vector.ravel()

    sizes = np.bincount(labels, minlength=n_clusters)
    if np.any(sizes == 0):
        raise ValueError(
            f"K-Means produced an empty cluster (sizes={sizes.tolist()})."
        )

    intensities = np.array([values[labels == j].mean() for j in range(n_clusters)])
    order = np.argsort(intensities, kind="stable")

    rank = np.empty(n_clusters, dtype=int)
    rank[order] = np.arange(n_clusters)
    cluster_map = rank[labels].reshape(image.shape)

    rows, cols = np.indices(image.shape)
    x_centroids = np.array([cols[cluster_map == j].mean() for j in range(n_clusters)])
    y_centroids = np.array([rows[cluster_map == j].mean() for j in range(n_clusters)])

    return ClusterFeatures(
        sizes=sizes[order],
        intensities=intensities[order],
        x_centroids=x_centroids,
        y_centroids=y_centroids,
        cluster_map=cluster_map,
    )


def extract_feature_row(
    path: str,
    label: int,
    data_set: str,
    n_clusters: int = 3,
    random_state: int = 1,
    n_init: int = 50,
    max_iter: int = 50,
) -> FeatureRow:
    """
    Load *path* and build its feature row.

    Errors are re-raised with the offending file named in the log so a
    failed run points straight at the bad scan.
    """
    if data_set not in SPLIT_NAMES:
        raise ValueError(f"Unknown split '{data_set}'. Choose from: {list(SPLIT_NAMES)}")

    try:
        features = cluster_features(
            load_grayscale(path), n_clusters=n_clusters, random_state=random_state,
            n_init=n_init, max_iter=max_iter,
        )
    except Exception:
        logger.error("Feature extraction failed for %s", path)
        raise

    logger.debug(
        "%s [%s, tumor=%d]: sizes=%s intensities=%s",
        path, data_set, label, features.sizes.tolist(), np.round(features.intensities, 4).tolist(),
    )
    return FeatureRow(data_set=data_set, features=features, label=int(label), file=path)


def rows_to_frame(rows: Sequence[FeatureRow], n_clusters: int = 3) -> pd.DataFrame:
    """Collect feature rows into a DataFrame with a fixed column order."""
    columns = [SPLIT_COLUMN] + feature_columns(n_clusters) + [LABEL_COLUMN, FILE_COLUMN]
    return pd.DataFrame([row.as_record() for row in rows], columns=columns)


def build_feature_table(
    splits: dict[int, DatasetSplit],
    n_clusters: int = 3,
    random_state: int = 1,
    n_init: int = 50,
    max_iter: int = 50,
) -> pd.DataFrame:
    """
    Extract features for every file of every split.

    Row order is train, val, test; within each split non-tumor (label 0)
    rows come before tumor (label 1) rows.

    Parameters
    ----------
    splits : dict[int, DatasetSplit]
        Per-label partitions as returned by ``split_classes``.

    Returns
    -------
    pd.DataFrame
        Columns: data_set, the 4k feature columns, tumor, file.
    """
    rows: list[FeatureRow] = []
    for data_set in SPLIT_NAMES:
        for label in sorted(splits):
            for path in splits[label].get(data_set):
                rows.append(extract_feature_row(
                    path, label, data_set, n_clusters=n_clusters,
                    random_state=random_state, n_init=n_init, max_iter=max_iter,
                ))

    table = rows_to_frame(rows, n_clusters=n_clusters)
    logger.info(
        "Feature table: %d rows (%s)",
        len(table), table[SPLIT_COLUMN].value_counts().to_dict(),
    )
    return table


def split_xy(
    table: pd.DataFrame,
    data_sets: Sequence[str],
    n_clusters: Optional[int] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Select the rows of *data_sets* and return (X, y) arrays.

    Raises
    ------
    ValueError
        If the selection is empty.
    """
    if n_clusters is None:
        n_clusters = sum(1 for c in table.columns if c.endswith("_size"))

    subset = table[table[SPLIT_COLUMN].isin(list(data_sets))]
    if subset.empty:
        raise ValueError(f"No rows for split(s) {list(data_sets)}.")

    X = subset[feature_columns(n_clusters)].to_numpy(dtype=np.float64)
    y = subset[LABEL_COLUMN].to_numpy(dtype=int)
    return X, y


def save_feature_table(table: pd.DataFrame, path: str) -> str:
    """Persist the feature table as CSV."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    table.to_csv(path, index=False)
    logger.info("Saved feature table (%d rows) to %s", len(table), path)
    return path


def load_feature_table(path: str) -> pd.DataFrame:
    """Read a feature table written by ``save_feature_table``."""
    table = pd.read_csv(path)
    missing = {SPLIT_COLUMN, LABEL_COLUMN} - set(table.columns)
    if missing:
        raise ValueError(f"{path} is not a feature table; missing columns {sorted(missing)}.")
    return table
