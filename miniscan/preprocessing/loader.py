"""Image decoding: encoded bytes or files into RGBA rasters.

Decoding sits outside the numeric engine; the pipeline accepts any callable
with the signature of ``decode_image``.
"""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import ExifTags, Image, UnidentifiedImageError

from miniscan.errors import DecodeError
from miniscan.raster import Raster

logger = logging.getLogger(__name__)

HEIC_EXTENSIONS = ('.heic', '.heif')
STANDARD_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.tiff', '.tif', '.bmp', '.webp')

_ORIENTATION_TAG = next(tag for tag, name in ExifTags.TAGS.items() if name == 'Orientation')


class ImageMetadata:
    """Metadata extracted from a decoded image."""

    def __init__(
        self,
        original_size: Tuple[int, int],
        format: str,
        orientation: int = 1
    ) -> None:
        self.original_size = original_size  # (width, height) before orientation
        self.format = format
        self.orientation = orientation


def _apply_exif_orientation(img: Image.Image) -> Tuple[Image.Image, int]:
    """Rotate/flip so pixels match how the photo is displayed."""
    orientation = img.getexif().get(_ORIENTATION_TAG, 1)

    transpose = Image.Transpose
    if orientation == 2:
        img = img.transpose(transpose.FLIP_LEFT_RIGHT)
    elif orientation == 3:
        img = img.transpose(transpose.ROTATE_180)
    elif orientation == 4:
        img = img.transpose(transpose.FLIP_TOP_BOTTOM)
    elif orientation == 5:
        img = img.transpose(transpose.TRANSPOSE)
    elif orientation == 6:
        img = img.transpose(transpose.ROTATE_270)
    elif orientation == 7:
        img = img.transpose(transpose.TRANSVERSE)
    elif orientation == 8:
        img = img.transpose(transpose.ROTATE_90)

    if orientation != 1:
        logger.debug(f"Applied EXIF orientation: {orientation}")

    return img, orientation


def _register_heif() -> None:
    try:
        from pillow_heif import register_heif_opener
    except ImportError as e:
        raise ImportError(
            "pillow-heif is required for HEIC support. "
            "Install with: pip install miniscan[heic]"
        ) from e
    register_heif_opener()


def _to_raster(img: Image.Image) -> Raster:
    # Any alpha in the source is discarded; the engine works on opaque pages
    rgb = np.array(img.convert('RGB'), dtype=np.uint8)
    return Raster.from_rgb(rgb)


def decode_with_metadata(data: bytes) -> Tuple[Raster, ImageMetadata]:
    """Decode image bytes into an RGBA raster plus metadata.

    Raises:
        DecodeError: If the bytes are not a readable image.
    """
    if not data:
        raise DecodeError("Failed to load image: no data")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            original_size = img.size
            format_name = img.format or 'UNKNOWN'
            oriented, orientation = _apply_exif_orientation(img)
            raster = _to_raster(oriented)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Failed to load image: {e}") from e

    metadata = ImageMetadata(
        original_size=original_size,
        format=format_name,
        orientation=orientation,
    )

    logger.info(f"Decoded {format_name}: {raster.width}x{raster.height}")

    return raster, metadata


def decode_image(data: bytes) -> Raster:
    """Decode image bytes into an RGBA raster."""
    raster, _ = decode_with_metadata(data)
    return raster


def decode_base64(payload: str) -> bytes:
    """Decode a base64 image payload, with or without a ``data:`` URI prefix."""
    if payload.startswith('data:'):
        _, _, payload = payload.partition(',')
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Failed to load image: invalid base64 ({e})") from e


def load_image(path: Union[str, Path]) -> Tuple[Raster, ImageMetadata]:
    """Load an image file from disk.

    Supports JPEG, PNG, TIFF, BMP, WebP and (with pillow-heif) HEIC.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the extension is not supported.
        DecodeError: If the file content cannot be decoded.
    """
    path_obj = Path(path)

    if not path_obj.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    ext = path_obj.suffix.lower()

    if ext in HEIC_EXTENSIONS:
        _register_heif()
    elif ext not in STANDARD_EXTENSIONS:
        raise ValueError(f"Unsupported image format: {ext}")

    raster, metadata = decode_with_metadata(path_obj.read_bytes())
    logger.info(f"Loaded {path_obj.name} ({raster.width}x{raster.height})")

    return raster, metadata
