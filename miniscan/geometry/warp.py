"""Inverse-mapped perspective warp with bilinear sampling.

Every destination pixel is mapped back into the source through the inverse
homography and sampled there, so the output has no holes. Pixels that map
outside the source are opaque black.
"""

import logging

import numpy as np

from miniscan.raster import Raster

logger = logging.getLogger(__name__)


def sample_bilinear(pixels: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Bilinearly sample the RGB channels of ``pixels`` at (xs, ys).

    Coordinates must already lie inside [0, width) x [0, height). The right
    and bottom neighbours are clamped to the last column/row.

    Args:
        pixels: Source RGBA array, shape (H, W, 4).
        xs: Source x coordinates, shape (N,).
        ys: Source y coordinates, shape (N,).

    Returns:
        Interpolated RGB values as float64, shape (N, 3).
    """
    height, width = pixels.shape[:2]

    x0f = np.floor(xs)
    y0f = np.floor(ys)
    fx = (xs - x0f)[:, None]
    fy = (ys - y0f)[:, None]

    x0 = np.clip(x0f.astype(np.int64), 0, width - 1)
    y0 = np.clip(y0f.astype(np.int64), 0, height - 1)
    x1 = np.minimum(x0 + 1, width - 1)
    y1 = np.minimum(y0 + 1, height - 1)

    rgb = pixels[:, :, :3]
    top = rgb[y0, x0] * (1 - fx) + rgb[y0, x1] * fx
    bottom = rgb[y1, x0] * (1 - fx) + rgb[y1, x1] * fx

    return top * (1 - fy) + bottom * fy


def warp_perspective(
    source: Raster,
    inverse_homography: np.ndarray,
    width: int,
    height: int,
    band_rows: int = 256,
) -> Raster:
    """Resample ``source`` into a new width x height raster.

    Args:
        source: Source raster.
        inverse_homography: 3x3 transform mapping destination -> source pixels.
        width: Destination width.
        height: Destination height.
        band_rows: Rows processed per vectorised band. Only affects memory use.

    Returns:
        New raster with alpha fully opaque everywhere.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid destination size {width}x{height}")
    if band_rows <= 0:
        raise ValueError(f"band_rows must be positive, got {band_rows}")

    h_inv = np.asarray(inverse_homography, dtype=np.float64)
    src_pixels = source.pixels
    src_w, src_h = source.width, source.height

    output = Raster.blank(width, height)
    out_pixels = output.pixels
    xs_row = np.arange(width, dtype=np.float64)

    for band_start in range(0, height, band_rows):
        band_end = min(band_start + band_rows, height)
        dx, dy = np.meshgrid(xs_row, np.arange(band_start, band_end, dtype=np.float64))

        w = h_inv[2, 0] * dx + h_inv[2, 1] * dy + h_inv[2, 2]
        with np.errstate(divide="ignore", invalid="ignore"):
            sx = (h_inv[0, 0] * dx + h_inv[0, 1] * dy + h_inv[0, 2]) / w
            sy = (h_inv[1, 0] * dx + h_inv[1, 1] * dy + h_inv[1, 2]) / w

        # NaN/inf compare False, so points at infinity fall outside
        inside = (sx >= 0) & (sx < src_w) & (sy >= 0) & (sy < src_h)
        if not inside.any():
            continue

        rgb = sample_bilinear(src_pixels, sx[inside], sy[inside])

        band = out_pixels[band_start:band_end]
        band_rgb = band[:, :, :3]
        band_rgb[inside] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)

    logger.debug(f"Warped {src_w}x{src_h} -> {width}x{height}")

    return output
