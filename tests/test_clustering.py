"""Tests for src/clustering.py."""

import numpy as np
import pytest

from src.clustering import (
    elbow_curve,
    fit_intensity_kmeans,
    image_to_vector,
    sample_files,
    select_elbow_k,
    within_cluster_ss,
)
from src.imaging import load_grayscale, save_grayscale


def _random_image(seed: int = 0, shape=(8, 8)) -> np.ndarray:
    return np.random.default_rng(seed).integers(0, 256, size=shape).astype(np.float64)


class TestFitIntensityKMeans:
    def test_vector_is_a_column(self):
        assert image_to_vector(np.zeros((3, 4))).shape == (12, 1)

    def test_fewer_distinct_values_than_k_raises(self):
        with pytest.raises(ValueError, match="distinct"):
            fit_intensity_kmeans(np.array([1.0, 1.0, 2.0, 2.0]), n_clusters=3)

    def test_every_pixel_labelled(self):
        kmeans = fit_intensity_kmeans(image_to_vector(_random_image()), n_clusters=3, n_init=5)
        assert kmeans.labels_.shape == (64,)
        assert set(np.unique(kmeans.labels_)) == {0, 1, 2}

    def test_seeded_fit_is_reproducible(self):
        X = image_to_vector(_random_image(1))
        a = fit_intensity_kmeans(X, n_clusters=3, random_state=1, n_init=5)
        b = fit_intensity_kmeans(X, n_clusters=3, random_state=1, n_init=5)
        np.testing.assert_array_equal(a.labels_, b.labels_)
        np.testing.assert_array_equal(a.cluster_centers_, b.cluster_centers_)


class TestWithinClusterSS:
    def test_k1_is_total_sum_of_squares(self):
        image = _random_image(2)
        wss = within_cluster_ss(image, max_k=1, n_init=1)
        assert wss[0] == pytest.approx(((image - image.mean()) ** 2).sum())

    def test_curve_does_not_increase(self):
        wss = within_cluster_ss(_random_image(3), max_k=4, n_init=10)
        assert wss.shape == (4,)
        assert np.all(np.diff(wss) <= 1e-9)


class TestElbowCurve:
    def test_averages_over_images(self, tmp_path):
        paths = []
        for i in range(2):
            path = str(tmp_path / f"img{i}.png")
            save_grayscale(_random_image(i).astype(np.uint8), path)
            paths.append(path)

        curve = elbow_curve(paths, max_k=3, n_init=5)
        expected = np.mean(
            [within_cluster_ss(load_grayscale(p), max_k=3, n_init=5) for p in paths], axis=0,
        )
        np.testing.assert_allclose(curve, expected)

    def test_sample_limit_fits_seeded_sample(self, tmp_path):
        paths = []
        for i in range(3):
            path = str(tmp_path / f"img{i}.png")
            save_grayscale(_random_image(10 + i).astype(np.uint8), path)
            paths.append(path)

        curve = elbow_curve(paths, max_k=2, n_init=5, sample_limit=1)
        (chosen,) = sample_files(paths, 1, seed=1)
        np.testing.assert_allclose(curve, within_cluster_ss(load_grayscale(chosen), max_k=2, n_init=5))

    def test_no_images_raises(self):
        with pytest.raises(ValueError):
            elbow_curve([], max_k=3)


class TestSelectElbowK:
    def test_fixed_policy_returns_configured_k(self):
        assert select_elbow_k([10, 5, 3, 2], policy="fixed", fixed_k=3) == 3

    def test_max_curvature_finds_elbow(self):
        assert select_elbow_k([100, 80, 20, 15, 12, 10], policy="max_curvature") == 3

    def test_max_curvature_needs_three_points(self):
        with pytest.raises(ValueError):
            select_elbow_k([10, 5], policy="max_curvature")

    def test_unknown_policy_raises(self):
        with pytest.raises(ValueError, match="Unknown elbow policy"):
            select_elbow_k([10, 5, 3], policy="eyeball")


class TestSampleFiles:
    def test_no_limit_keeps_everything(self):
        files = ["a", "b", "c"]
        assert sample_files(files, None) == files
        assert sample_files(files, 5) == files

    def test_sample_is_seeded_and_ordered(self):
        files = [f"N{i}" for i in range(20)]
        picked = sample_files(files, 5, seed=3)
        assert picked == sample_files(files, 5, seed=3)
        assert len(set(picked)) == 5
        assert picked == sorted(picked, key=files.index)

    def test_sample_draws_from_both_classes(self):
        # Non-tumor train files come first, so a prefix would hold only "N"
        files = [f"N{i}.png" for i in range(6)] + [f"Y{i}.png" for i in range(6)]
        picked = sample_files(files, 10, seed=1)
        assert {name[0] for name in picked} == {"N", "Y"}
