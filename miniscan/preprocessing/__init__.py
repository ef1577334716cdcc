"""Decode/encode boundary between image files and rasters."""

from miniscan.preprocessing.encoder import encode_png, raster_to_image
from miniscan.preprocessing.loader import (
    ImageMetadata,
    decode_base64,
    decode_image,
    decode_with_metadata,
    load_image,
)

__all__ = [
    "ImageMetadata",
    "decode_base64",
    "decode_image",
    "decode_with_metadata",
    "encode_png",
    "load_image",
    "raster_to_image",
]
