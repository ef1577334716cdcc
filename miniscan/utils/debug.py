"""Debug visualization and output utilities."""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from miniscan.raster import Raster

logger = logging.getLogger(__name__)


_TO_BGR = {
    3: cv2.COLOR_RGB2BGR,
    4: cv2.COLOR_RGBA2BGR,
}


def save_debug_image(
    image: Union[Raster, np.ndarray],
    output_path: Union[str, Path],
    description: Optional[str] = None,
    quality: int = 95
) -> Path:
    """Write a pipeline stage to disk as a JPEG.

    Accepts a Raster or an RGB/RGBA uint8 array. The file suffix is always
    replaced with ``.jpg``; the path actually written is returned.
    """
    pixels = image.pixels if isinstance(image, Raster) else image
    channels = pixels.shape[2] if pixels.ndim == 3 else 0
    if pixels.dtype != np.uint8 or channels not in _TO_BGR:
        raise ValueError(f"Cannot save debug image of shape {pixels.shape} and dtype {pixels.dtype}")

    jpg_path = Path(output_path).with_suffix('.jpg')
    jpg_path.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(jpg_path), cv2.cvtColor(pixels, _TO_BGR[channels]), [cv2.IMWRITE_JPEG_QUALITY, quality])

    logger.debug(f"Saved debug image: {jpg_path}" + (f" - {description}" if description else ""))

    return jpg_path


def draw_corners(
    raster: Raster,
    corners: np.ndarray,
    line_thickness: int = 3
) -> np.ndarray:
    """Draw the selected quadrilateral and labelled corner handles.

    Args:
        raster: Source raster
        corners: Absolute corner points (4, 2) as [TL, TR, BR, BL]
        line_thickness: Thickness of the outline

    Returns:
        RGB uint8 array of the same size as the raster
    """
    img_viz = np.ascontiguousarray(raster.pixels[:, :, :3])
    pts = np.round(corners).astype(np.int32)

    cv2.polylines(img_viz, [pts.reshape(-1, 1, 2)], isClosed=True,
                  color=(0, 122, 255), thickness=line_thickness)

    radius = max(4, min(raster.width, raster.height) // 60)
    for label, (x, y) in zip(("TL", "TR", "BR", "BL"), pts):
        cv2.circle(img_viz, (int(x), int(y)), radius, (255, 255, 255), -1)
        cv2.circle(img_viz, (int(x), int(y)), radius, (0, 122, 255), 2)
        cv2.putText(
            img_viz,
            label,
            (int(x) + radius + 2, int(y) - radius - 2),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (255, 0, 0),
            2,
            cv2.LINE_AA
        )

    return img_viz
