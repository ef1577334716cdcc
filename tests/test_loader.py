"""Tests for image decoding and encoding."""

import base64
import io

import numpy as np
import pytest
from PIL import Image

from miniscan.errors import DecodeError
from miniscan.preprocessing.encoder import encode_png
from miniscan.preprocessing.loader import (
    ImageMetadata,
    decode_base64,
    decode_image,
    decode_with_metadata,
    load_image,
)
from miniscan.raster import Raster


def _encode(img: Image.Image, format: str, **kwargs) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=format, **kwargs)
    return buffer.getvalue()


def _gradient_image(width: int = 20, height: int = 10) -> Image.Image:
    xs = np.linspace(0, 255, width, dtype=np.uint8)
    rgb = np.stack([np.tile(xs, (height, 1))] * 3, axis=-1)
    return Image.fromarray(rgb)


class TestDecodeImage:

    def test_decode_png(self) -> None:
        raster = decode_image(_encode(_gradient_image(), "PNG"))

        assert isinstance(raster, Raster)
        assert raster.pixels.dtype == np.uint8
        assert raster.pixels.shape == (10, 20, 4)
        assert np.all(raster.pixels[:, :, 3] == 255)
        assert raster.pixels[0, -1, 0] == 255

    def test_transparency_becomes_opaque(self) -> None:
        rgba = Image.new("RGBA", (8, 8), (10, 20, 30, 0))
        raster = decode_image(_encode(rgba, "PNG"))
        assert np.all(raster.pixels[:, :, 3] == 255)
        assert tuple(raster.pixels[0, 0, :3]) == (10, 20, 30)

    def test_grayscale_source(self) -> None:
        raster = decode_image(_encode(Image.new("L", (5, 4), 77), "PNG"))
        assert raster.pixels.shape == (4, 5, 4)
        assert np.all(raster.pixels[:, :, :3] == 77)

    def test_exif_orientation_applied(self) -> None:
        """Orientation 6 (rotate 90 CW) swaps the displayed width and height."""
        exif = Image.Exif()
        exif[0x0112] = 6
        data = _encode(_gradient_image(20, 10), "JPEG", exif=exif.tobytes())

        raster, metadata = decode_with_metadata(data)

        assert isinstance(metadata, ImageMetadata)
        assert metadata.orientation == 6
        assert metadata.original_size == (20, 10)
        assert metadata.format == "JPEG"
        assert (raster.width, raster.height) == (10, 20)

    def test_garbage_bytes(self) -> None:
        with pytest.raises(DecodeError, match="Failed to load image"):
            decode_image(b"\x00\x01not-an-image")

    def test_empty_bytes(self) -> None:
        with pytest.raises(DecodeError):
            decode_image(b"")

    def test_decompression_bomb(self, monkeypatch) -> None:
        data = encode_png(Raster.blank(100, 100))
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(DecodeError, match="Failed to load image"):
            decode_image(data)


class TestDecodeBase64:

    def test_plain_payload(self) -> None:
        assert decode_base64(base64.b64encode(b"abc").decode()) == b"abc"

    def test_data_uri(self) -> None:
        payload = "data:image/jpeg;base64," + base64.b64encode(b"xyz").decode()
        assert decode_base64(payload) == b"xyz"

    def test_invalid(self) -> None:
        with pytest.raises(DecodeError):
            decode_base64("***not base64***")


class TestLoadImage:

    def test_load_png_file(self, tmp_path) -> None:
        path = tmp_path / "page.png"
        _gradient_image(30, 15).save(path)
        raster, metadata = load_image(path)
        assert (raster.width, raster.height) == (30, 15)
        assert metadata.format == "PNG"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.jpg")

    def test_unsupported_extension(self, tmp_path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(ValueError, match="Unsupported image format"):
            load_image(path)


class TestEncodePng:

    def test_round_trip_preserves_pixels(self) -> None:
        pixels = np.random.RandomState(0).randint(0, 256, size=(12, 9, 4)).astype(np.uint8)
        data = encode_png(Raster(pixels))

        assert data.startswith(b"\x89PNG")
        with Image.open(io.BytesIO(data)) as img:
            assert img.mode == "RGBA"
            np.testing.assert_array_equal(np.array(img), pixels)


class TestRaster:

    def test_rejects_wrong_shape(self) -> None:
        with pytest.raises(ValueError):
            Raster(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_rejects_wrong_dtype(self) -> None:
        with pytest.raises(ValueError):
            Raster(np.zeros((4, 4, 4), dtype=np.float32))

    def test_blank_is_opaque_black(self) -> None:
        raster = Raster.blank(3, 2)
        assert raster.pixels.shape == (2, 3, 4)
        assert np.all(raster.pixels[:, :, :3] == 0)
        assert np.all(raster.pixels[:, :, 3] == 255)
