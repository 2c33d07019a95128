"""
augmentation.py - Four-fold geometric augmentation of the source scans.

Each source image is written out four times:

    _OR  original (identity)
    _FH  horizontal mirror  (columns reversed, left <-> right)
    _FV  vertical mirror    (rows reversed, top <-> bottom)
    _XY  180 degree rotation (both mirrors combined)

None of these transforms changes the image dimensions, and none of them
interpolates, so the intensity histogram (and therefore the k-means
intensity clusters) is identical across the four variants.  Only the
cluster centroid positions move.

A missing or unreadable source image is fatal: augmentation is an offline
step with no partial-failure contract.
"""

import logging
import os

import numpy as np

from src.imaging import list_image_files, load_grayscale, save_grayscale

logger = logging.getLogger(__name__)

# Ordered so output files are always written OR, FH, FV, XY
AUGMENTATION_SUFFIXES: tuple[str, ...] = ("OR", "FH", "FV", "XY")


def augment_array(image: np.ndarray) -> dict[str, np.ndarray]:
    """
    Produce the four geometric variants of *image*.

    Parameters
    ----------
    image : np.ndarray
        2-D greyscale (H, W) or channel-last (H, W, C) array.

    Returns
    -------
    dict[str, np.ndarray]
        Variants keyed by suffix, in AUGMENTATION_SUFFIXES order.
    """
    if image.ndim not in (2, 3):
        raise ValueError(f"Expected a 2-D or 3-D image array, got shape {image.shape}.")

    return {
        "OR": image,
        "FH": np.flip(image, axis=1),
        "FV": np.flip(image, axis=0),
        "XY": np.rot90(image, k=2, axes=(0, 1)),
    }


def augmented_filename(source_path: str, suffix: str, image_format: str = "jpg") -> str:
    """Return ``<stem>_<suffix>.<ext>`` for a source file path."""
    stem = os.path.splitext(os.path.basename(source_path))[0]
    return f"{stem}_{suffix}.{image_format.lower()}"


def augment_image(
    path: str,
    output_dir: str,
    image_format: str = "jpg",
) -> list[str]:
    """
    Write the four augmented variants of *path* into *output_dir*.

    Parameters
    ----------
    path : str
        Source image (raster or DICOM).
    output_dir : str
        Destination directory; created if missing.
    image_format : str
        Output file extension.  "jpg" matches the original dataset; use a
        lossless format such as "png" to keep pixels bit-exact.

    Returns
    -------
    list[str]
        Paths written, in OR, FH, FV, XY order.
    """
    image = load_grayscale(path)
    os.makedirs(output_dir, exist_ok=True)

    written = []
    for suffix, variant in augment_array(image).items():
        out_path = os.path.join(output_dir, augmented_filename(path, suffix, image_format))
        save_grayscale(variant, out_path, image_format=image_format)
        written.append(out_path)

    logger.debug("Augmented %s -> %d files in %s", path, len(written), output_dir)
    return written


def augment_folder(
    input_dir: str,
    output_dir: str,
    image_format: str = "jpg",
) -> list[str]:
    """
    Augment every image in *input_dir* into *output_dir*.

    Returns
    -------
    list[str]
        All written paths (four per source image).

    Raises
    ------
    FileNotFoundError
        If *input_dir* does not exist.
    ValueError
        If *input_dir* holds no supported images, or two sources share a
        file stem (their outputs would overwrite each other).
    """
    sources = list_image_files(input_dir)
    if not sources:
        raise ValueError(f"No images to augment in {input_dir}")

    seen: dict[str, str] = {}
    for source in sources:
        stem = os.path.splitext(os.path.basename(source))[0]
        if stem in seen:
            raise ValueError(
                f"Duplicate image stem '{stem}' in {input_dir}: {seen[stem]} and {source}"
            )
        seen[stem] = source

    written: list[str] = []
    for source in sources:
        written.extend(augment_image(source, output_dir, image_format=image_format))

    logger.info(
        "Augmented %d image(s) from %s into %d file(s) in %s",
        len(sources), input_dir, len(written), output_dir,
    )
    return written
