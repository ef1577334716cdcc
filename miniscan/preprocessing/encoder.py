"""Image encoding: rasters into PNG bytes."""

import io
import logging

from PIL import Image

from miniscan.raster import Raster

logger = logging.getLogger(__name__)


def raster_to_image(raster: Raster) -> Image.Image:
    return Image.fromarray(raster.pixels)


def encode_png(raster: Raster, compress_level: int = 6) -> bytes:
    """Encode a raster as PNG, keeping the alpha channel."""
    buffer = io.BytesIO()
    raster_to_image(raster).save(buffer, format='PNG', compress_level=compress_level)
    data = buffer.getvalue()

    logger.debug(f"Encoded PNG {raster.width}x{raster.height}: {len(data)} bytes")

    return data
