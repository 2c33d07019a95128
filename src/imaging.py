"""
imaging.py - Image discovery, greyscale loading and saving.

All downstream stages (augmentation, clustering, visualisation) work on
2-D float arrays with intensities in [0, 1].  This module is the only
place that knows about file formats:

    Raster files (jpg, png, bmp, tif)  -> Pillow, converted to mode "L"
    DICOM MRI slices (.dcm)            -> pydicom, rescaled and windowed

MRI has no absolute intensity scale (unlike CT Hounsfield Units), so a
DICOM slice is windowed with the WindowCenter / WindowWidth stored in its
header when present and min-max normalised otherwise.
"""

import logging
import os
from typing import Optional

import numpy as np
import pydicom
from PIL import Image

logger = logging.getLogger(__name__)

RASTER_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff")
DICOM_EXTENSIONS = (".dcm",)
SUPPORTED_EXTENSIONS = RASTER_EXTENSIONS + DICOM_EXTENSIONS

_PIL_FORMATS = {"jpg": "JPEG", "jpeg": "JPEG", "tif": "TIFF", "tiff": "TIFF"}


def list_image_files(folder: str) -> list[str]:
    """
    Return the sorted paths of every supported image file in *folder*.

    Hidden files and unsupported extensions are skipped.  Sorting keeps the
    order stable across platforms so seeded sampling stays reproducible.

    Raises
    ------
    FileNotFoundError
        If *folder* does not exist.
    """
    if not os.path.isdir(folder):
        raise FileNotFoundError(f"Image folder not found: {folder}")

    files = sorted(
        f for f in os.listdir(folder)
        if not f.startswith(".") and f.lower().endswith(SUPPORTED_EXTENSIONS)
    )
    logger.debug("Found %d image file(s) in %s", len(files), folder)
    return [os.path.join(folder, f) for f in files]


def apply_window(
    values: np.ndarray,
    center: float,
    width: float,
) -> np.ndarray:
    """
    Apply window/level to an intensity array and return values in [0, 1].

    Pixels below (center - width/2) map to 0.
    Pixels above (center + width/2) map to 1.
    Everything in between is linearly scaled.
    """
    if width <= 0:
        raise ValueError(
            f"Window width must be > 0, got width={width}."
        )
    lower = center - width / 2.0
    upper = center + width / 2.0
    windowed = np.clip(values, lower, upper)
    return (windowed - lower) / (upper - lower)


def normalize_intensity(values: np.ndarray) -> np.ndarray:
    """Min-max scale *values* to [0, 1]; a constant image maps to zeros."""
    values = values.astype(np.float64)
    lo, hi = float(values.min()), float(values.max())
    if hi == lo:
        return np.zeros_like(values)
    return (values - lo) / (hi - lo)


def _first_value(value) -> float:
    # WindowCenter/Width can be a MultiValue list; take the first element
    if hasattr(value, "__iter__") and not isinstance(value, str):
        return float(list(value)[0])
    return float(value)


def _load_dicom(path: str) -> np.ndarray:
    ds = pydicom.dcmread(path)
    slope = float(getattr(ds, "RescaleSlope", 1.0))
    intercept = float(getattr(ds, "RescaleIntercept", 0.0))
    values = ds.pixel_array.astype(np.float64) * slope + intercept

    if values.ndim == 3:
        # Multi-frame or RGB DICOM: keep the first frame / mean of channels
        values = values.mean(axis=-1) if values.shape[-1] in (3, 4) else values[0]

    center = getattr(ds, "WindowCenter", None)
    width = getattr(ds, "WindowWidth", None)
    if center is not None and width is not None:
        return apply_window(values, center=_first_value(center), width=_first_value(width))
    return normalize_intensity(values)


def _load_raster(path: str) -> np.ndarray:
    with Image.open(path) as img:
        grey = img.convert("L")
        return np.asarray(grey, dtype=np.float64) / 255.0


def load_grayscale(path: str) -> np.ndarray:
    """
    Load *path* as a 2-D greyscale intensity array in [0, 1].

    Parameters
    ----------
    path : str
        Raster image or DICOM file.

    Returns
    -------
    np.ndarray
        Float64 array of shape (height, width).

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    PIL.UnidentifiedImageError
        If a raster file cannot be decoded.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Image file not found: {path}")

    if path.lower().endswith(DICOM_EXTENSIONS):
        image = _load_dicom(path)
    else:
        image = _load_raster(path)

    logger.debug("Loaded %s: shape=%s", path, image.shape)
    return image


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Convert a [0, 1] float image to 8-bit; uint8 input is returned as-is."""
    if image.dtype == np.uint8:
        return image
    return np.clip(np.rint(image * 255.0), 0, 255).astype(np.uint8)


def save_grayscale(
    image: np.ndarray,
    path: str,
    image_format: Optional[str] = None,
) -> str:
    """
    Write *image* to *path* as an 8-bit greyscale file.

    The format is inferred from the extension unless *image_format* is
    given.  Parent directories are created as needed.

    Returns
    -------
    str
        The path written.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    pil_format = None
    if image_format is not None:
        fmt = image_format.lower()
        pil_format = _PIL_FORMATS.get(fmt, fmt.upper())

    Image.fromarray(np.ascontiguousarray(to_uint8(image))).save(path, format=pil_format)
    return path
