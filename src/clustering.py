"""
clustering.py - K-Means clustering of MRI pixel intensities.

Every greyscale scan is flattened to a 1-D intensity vector and grouped
into k intensity clusters.  With k=3 the clusters tend to separate
background, normal brain tissue, and the brightest structures (where an
enhancing tumor usually falls), which is what makes the per-cluster
statistics useful as classifier features.

CHOOSING k
----------
The elbow method fits k = 1..max_k on every training image, averages the
total within-cluster sum of squares per k, and looks for the point of
diminishing returns.  In the original study k was read off the plot by
eye and fixed at 3.  ``select_elbow_k`` keeps that as the default
("fixed") and offers an automated "max_curvature" rule that picks the k
with the largest second difference of the curve.

LIMITATIONS
-----------
- No spatial context: neighbouring pixels are clustered independently.
- Cluster labels are arbitrary; callers must order them (see features.py).
- Intensities are relative to each scan's own acquisition settings.

References
----------
- Scikit-learn KMeans: https://scikit-learn.org/stable/modules/generated/sklearn.cluster.KMeans.html
"""

import logging
from typing import Optional, Sequence

import numpy as np
from sklearn.cluster import KMeans

from src.imaging import load_grayscale

logger = logging.getLogger(__name__)


def image_to_vector(image: np.ndarray) -> np.ndarray:
    """Flatten a 2-D image (row-major) to the (n_pixels, 1) column KMeans expects."""
    return np.asarray(image, dtype=np.float64).reshape(-1, 1)


def fit_intensity_kmeans(
    vector: np.ndarray,
    n_clusters: int = 3,
    random_state: int = 1,
    n_init: int = 50,
    max_iter: int = 50,
) -> KMeans:
    """
    Fit K-Means to a column vector of pixel intensities.

    Multiple restarts (*n_init*) guard against poor local minima; the
    fixed *random_state* makes the result reproducible.

    Parameters
    ----------
    vector : np.ndarray
        Shape (n_pixels, 1) or (n_pixels,) intensity values.
    n_clusters : int
        Number of intensity clusters.
    random_state : int
        Seed for centroid initialisation.
    n_init : int
        Number of restarts; the lowest-inertia solution is kept.
    max_iter : int
        Iteration cap per restart.

    Returns
    -------
    KMeans
        Fitted estimator (``labels_``, ``cluster_centers_``, ``inertia_``).

    Raises
    ------
    ValueError
        If the vector holds fewer distinct values than *n_clusters*.
    """
    X = np.asarray(vector, dtype=np.float64).reshape(-1, 1)
    n_distinct = np.unique(X).size
    if n_distinct < n_clusters:
        raise ValueError(
            f"Cannot form {n_clusters} clusters from {n_distinct} distinct intensity value(s)."
        )

    kmeans = KMeans(
        n_clusters=n_clusters,
        n_init=n_init,
        max_iter=max_iter,
        random_state=random_state,
    )
    kmeans.fit(X)
    return kmeans


def within_cluster_ss(
    image: np.ndarray,
    max_k: int = 10,
    random_state: int = 1,
    n_init: int = 50,
    max_iter: int = 50,
) -> np.ndarray:
    """Total within-cluster sum of squares of *image* for k = 1..max_k."""
    X = image_to_vector(image)
    return np.array([
        fit_intensity_kmeans(
            X, n_clusters=k, random_state=random_state,
            n_init=n_init, max_iter=max_iter,
        ).inertia_
        for k in range(1, max_k + 1)
    ])


def sample_files(files: Sequence[str], limit: Optional[int], seed: int = 1) -> list[str]:
    """
    Draw *limit* files without replacement, keeping their input order.

    None, or a limit at least as large as the input, returns every file.
    """
    files = list(files)
    if limit is None or limit >= len(files):
        return files
    picked = np.random.default_rng(seed).choice(len(files), size=limit, replace=False)
    return [files[i] for i in np.sort(picked)]


def elbow_curve(
    files: Sequence[str],
    max_k: int = 10,
    random_state: int = 1,
    n_init: int = 50,
    max_iter: int = 50,
    sample_limit: Optional[int] = None,
) -> np.ndarray:
    """
    Average within-cluster sum of squares per k over a set of images.

    Parameters
    ----------
    files : sequence of str
        Training images.
    max_k : int
        Largest k evaluated.
    sample_limit : int, optional
        Fit only a random sample of *sample_limit* files drawn with
        *random_state*; None = all.  Fitting max_k models with 50 restarts
        per image is the slowest step of the whole pipeline.

    Returns
    -------
    np.ndarray
        Shape (max_k,): mean WSS for k = 1..max_k.
    """
    files = sample_files(files, sample_limit, seed=random_state)
    if not files:
        raise ValueError("Elbow curve needs at least one image.")

    wss = np.vstack([
        within_cluster_ss(
            load_grayscale(path), max_k=max_k, random_state=random_state,
            n_init=n_init, max_iter=max_iter,
        )
        for path in files
    ])
    curve = wss.mean(axis=0)
    logger.info("Elbow curve over %d image(s): %s", len(files), np.round(curve, 3).tolist())
    return curve


def select_elbow_k(
    wss: Sequence[float],
    policy: str = "fixed",
    fixed_k: int = 3,
) -> int:
    """
    Choose the number of clusters from an elbow curve.

    Parameters
    ----------
    wss : sequence of float
        Mean WSS for k = 1..len(wss).
    policy : str
        "fixed" returns *fixed_k* (the manually chosen value);
        "max_curvature" returns the k whose second difference
        ``wss[k-1] - 2*wss[k] + wss[k+1]`` is largest.
    fixed_k : int
        The k used by the "fixed" policy.

    Returns
    -------
    int
        The selected k (1-based).
    """
    if policy == "fixed":
        return fixed_k

    if policy == "max_curvature":
        curve = np.asarray(wss, dtype=np.float64)
        if curve.size < 3:
            raise ValueError(
                f"max_curvature needs an elbow curve with >= 3 points, got {curve.size}."
            )
        second_diff = curve[:-2] - 2 * curve[1:-1] + curve[2:]
        # second_diff[i] is centred on k = i + 2
        k = int(np.argmax(second_diff)) + 2
        logger.info("Elbow (max curvature) selected k=%d", k)
        return k

    raise ValueError(f"Unknown elbow policy '{policy}'.")
