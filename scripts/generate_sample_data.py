"""
generate_sample_data.py - Create synthetic brain MRI slices for an end-to-end demo.

Writes small greyscale images into the tumor / non-tumor folders from
config.yaml so you can run the full pipeline immediately without a real
dataset.

Every slice is a noisy grey ellipse ("brain") on a dark background.
Tumor slices additionally carry one bright, roughly circular lesion at a
random position inside the brain, which is exactly the kind of structure
the brightest k-means cluster picks up.

Usage
-----
    python scripts/generate_sample_data.py
"""

import os
import sys

import numpy as np

# Make sure repo root is on the path when run as a script
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from src.config import CONFIG  # noqa: E402 — import after path fix
from src.imaging import save_grayscale  # noqa: E402

TUMOR_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["tumor_dir"])
NON_TUMOR_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["non_tumor_dir"])


def make_slice(
    rng: np.random.Generator,
    size: int = 64,
    tumor: bool = False,
) -> np.ndarray:
    """
    Build one synthetic axial slice with intensities in [0, 1].

    Parameters
    ----------
    rng : np.random.Generator
        Seeded generator controlling shape, noise and lesion placement.
    size : int
        Image height and width in pixels.
    tumor : bool
        Add a bright lesion inside the brain.
    """
    rows, cols = np.indices((size, size))
    cy, cx = size / 2 + rng.normal(0, 1.5), size / 2 + rng.normal(0, 1.5)
    ry, rx = size * rng.uniform(0.36, 0.44), size * rng.uniform(0.30, 0.38)

    brain = ((rows - cy) / ry) ** 2 + ((cols - cx) / rx) ** 2 <= 1.0
    image = np.full((size, size), 0.05)
    image[brain] = rng.uniform(0.40, 0.50)

    if tumor:
        # Lesion centre somewhere in the inner half of the brain
        angle = rng.uniform(0, 2 * np.pi)
        dist = rng.uniform(0.0, 0.5)
        ty, tx = cy + dist * ry * np.sin(angle), cx + dist * rx * np.cos(angle)
        radius = size * rng.uniform(0.07, 0.14)
        lesion = (rows - ty) ** 2 + (cols - tx) ** 2 <= radius ** 2
        image[lesion & brain] = rng.uniform(0.85, 0.95)

    image += rng.normal(0, 0.02, size=image.shape)
    return np.clip(image, 0.0, 1.0)


def generate(
    tumor_folder: str = TUMOR_FOLDER,
    non_tumor_folder: str = NON_TUMOR_FOLDER,
    n_per_class: int = 20,
    size: int = 64,
    seed: int = 42,
) -> None:
    """Write *n_per_class* synthetic PNG slices into each class folder."""
    rng = np.random.default_rng(seed)

    for folder, tumor in ((non_tumor_folder, False), (tumor_folder, True)):
        os.makedirs(folder, exist_ok=True)
        prefix = "Y" if tumor else "N"
        for i in range(1, n_per_class + 1):
            path = os.path.join(folder, f"{prefix}{i:03d}.png")
            save_grayscale(make_slice(rng, size=size, tumor=tumor), path)
        print(f"  Wrote {n_per_class} {'tumor' if tumor else 'non-tumor'} slices to {folder}")


if __name__ == "__main__":
    generate()
