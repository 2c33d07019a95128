"""Tests for src/imaging.py."""

import numpy as np
import pydicom
import pytest
from PIL import Image, UnidentifiedImageError
from pydicom.dataset import FileDataset
from pydicom.uid import ExplicitVRLittleEndian

from src.imaging import (
    apply_window,
    list_image_files,
    load_grayscale,
    normalize_intensity,
    save_grayscale,
    to_uint8,
)


def _write_dicom(path: str, pixels: np.ndarray, window=None) -> None:
    """Write a minimal MR DICOM file with the given 16-bit pixel array."""
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID("1.2.840.10008.5.1.4.1.1.4")
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(path, {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.Modality = "MR"
    ds.Rows, ds.Columns = pixels.shape
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.PixelRepresentation = 0
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelData = pixels.astype(np.uint16).tobytes()
    if window is not None:
        ds.WindowCenter, ds.WindowWidth = window
    ds.save_as(path)


class TestListImageFiles:
    def test_missing_folder_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="not found"):
            list_image_files(str(tmp_path / "nonexistent"))

    def test_filters_and_sorts(self, tmp_path):
        for name in ["b.png", "a.jpg", "c.dcm", ".hidden.png", "notes.txt"]:
            (tmp_path / name).write_bytes(b"")
        files = list_image_files(str(tmp_path))
        assert [p.split("/")[-1] for p in files] == ["a.jpg", "b.png", "c.dcm"]

    def test_empty_folder_returns_empty_list(self, tmp_path):
        assert list_image_files(str(tmp_path)) == []


class TestLoadRaster:
    def test_png_round_trip_is_exact(self, tmp_path):
        pixels = np.array([[0, 128], [255, 64]], dtype=np.uint8)
        path = save_grayscale(pixels, str(tmp_path / "scan.png"))
        image = load_grayscale(path)
        assert image.shape == (2, 2)
        np.testing.assert_array_equal(to_uint8(image), pixels)

    def test_rgb_is_converted_to_single_channel(self, tmp_path):
        rgb = np.zeros((3, 5, 3), dtype=np.uint8)
        rgb[..., 0] = 255
        path = str(tmp_path / "rgb.png")
        Image.fromarray(rgb).save(path)
        image = load_grayscale(path)
        assert image.shape == (3, 5)
        assert 0.0 <= image.min() <= image.max() <= 1.0

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_grayscale(str(tmp_path / "missing.png"))

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"definitely not an image")
        with pytest.raises(UnidentifiedImageError):
            load_grayscale(str(path))


class TestLoadDicom:
    def test_without_window_is_min_max_normalised(self, tmp_path):
        pixels = np.arange(16, dtype=np.uint16).reshape(4, 4) * 10
        path = str(tmp_path / "slice.dcm")
        _write_dicom(path, pixels)
        image = load_grayscale(path)
        assert image.shape == (4, 4)
        assert image.min() == 0.0
        assert image.max() == 1.0

    def test_header_window_is_applied(self, tmp_path):
        pixels = np.array([[0, 100], [200, 1000]], dtype=np.uint16)
        path = str(tmp_path / "slice.dcm")
        _write_dicom(path, pixels, window=(100.0, 200.0))
        image = load_grayscale(path)
        np.testing.assert_allclose(image, [[0.0, 0.5], [1.0, 1.0]])


class TestIntensityHelpers:
    def test_window_center_maps_to_half(self):
        assert abs(apply_window(np.array([40.0]), center=40, width=80)[0] - 0.5) < 1e-9

    def test_window_width_must_be_positive(self):
        with pytest.raises(ValueError, match="Window width"):
            apply_window(np.array([1.0]), center=0, width=0)

    def test_constant_image_normalises_to_zeros(self):
        np.testing.assert_array_equal(normalize_intensity(np.full((2, 2), 7.0)), np.zeros((2, 2)))

    def test_to_uint8_scales_and_clips(self):
        out = to_uint8(np.array([-0.5, 0.0, 0.5, 1.0, 2.0]))
        np.testing.assert_array_equal(out, [0, 0, 128, 255, 255])
