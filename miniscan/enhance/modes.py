"""Page enhancement modes applied after the perspective warp.

Three mutually exclusive modes:

- BLACK_WHITE: adaptive threshold of the luminance, for text documents.
- GRAYSCALE: luminance with a 1st-99th percentile contrast stretch.
- COLOR: per-channel percentile stretch followed by a midtone gamma lift.

All modes rewrite the RGB channels of the raster in place and leave alpha
untouched.
"""

import logging
from enum import Enum
from typing import Tuple

import numpy as np

from miniscan.enhance.threshold import adaptive_threshold, compute_block_size, to_luminance
from miniscan.raster import Raster

logger = logging.getLogger(__name__)


class EnhanceMode(Enum):
    """Enhancement mode, identified on the wire by a short tag."""

    BLACK_WHITE = "bw"
    GRAYSCALE = "gray"
    COLOR = "color"

    @classmethod
    def from_tag(cls, tag: str) -> "EnhanceMode":
        try:
            return cls(tag)
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown enhance mode '{tag}' (expected one of: {valid})") from None


def percentile_bounds(values: np.ndarray, low: float = 0.01, high: float = 0.99) -> Tuple[float, float]:
    """Return the values at sorted positions floor(n*low) and floor(n*high)."""
    flat = values.ravel()
    n = flat.size
    if n == 0:
        raise ValueError("Cannot compute percentiles of an empty array")

    lo_idx = int(np.floor(n * low))
    hi_idx = min(int(np.floor(n * high)), n - 1)
    ordered = np.partition(flat, [lo_idx, hi_idx])

    return float(ordered[lo_idx]), float(ordered[hi_idx])


def stretch_contrast(values: np.ndarray, lo: float, hi: float) -> np.ndarray:
    """Linearly map [lo, hi] onto [0, 255], clamped. A zero range counts as 1."""
    span = hi - lo
    if span == 0:
        span = 1.0
    return np.clip((values - lo) / span * 255.0, 0.0, 255.0)


def _round_to_uint8(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5).astype(np.uint8)


def enhance_black_white(
    raster: Raster,
    offset: float = 10.0,
    min_block: int = 15,
    block_divisor: int = 8,
) -> None:
    """Binarize the page with an adaptive threshold."""
    gray = to_luminance(raster.pixels)
    block_size = compute_block_size(raster.width, raster.height, min_block, block_divisor)
    binary = adaptive_threshold(gray, block_size, offset)

    raster.pixels[:, :, :3] = binary[:, :, None]

    ink_ratio = float(np.mean(binary == 0))
    logger.info(f"Black & white: block_size={block_size}, ink coverage {ink_ratio:.1%}")


def enhance_grayscale(raster: Raster, low: float = 0.01, high: float = 0.99) -> None:
    """Convert to luminance and stretch the 1st-99th percentile range to full scale."""
    gray = to_luminance(raster.pixels)
    lo, hi = percentile_bounds(gray, low, high)
    stretched = _round_to_uint8(stretch_contrast(gray, lo, hi))

    raster.pixels[:, :, :3] = stretched[:, :, None]

    logger.info(f"Grayscale: stretched luminance [{lo:.1f}, {hi:.1f}] -> [0, 255]")


def enhance_color(
    raster: Raster,
    low: float = 0.01,
    high: float = 0.99,
    gamma: float = 0.85,
) -> None:
    """Stretch each RGB channel independently, then brighten midtones with gamma."""
    for channel in range(3):
        values = raster.pixels[:, :, channel].astype(np.float64)
        lo, hi = percentile_bounds(values, low, high)
        stretched = stretch_contrast(values, lo, hi)
        corrected = np.power(stretched / 255.0, gamma) * 255.0
        raster.pixels[:, :, channel] = _round_to_uint8(corrected)

        logger.debug(f"Color channel {'RGB'[channel]}: [{lo:.0f}, {hi:.0f}] -> [0, 255]")

    logger.info(f"Color: per-channel stretch with gamma {gamma}")


def apply_enhancement(
    raster: Raster,
    mode: EnhanceMode,
    threshold_offset: float = 10.0,
    min_block: int = 15,
    block_divisor: int = 8,
    low_percentile: float = 0.01,
    high_percentile: float = 0.99,
    gamma: float = 0.85,
) -> None:
    """Apply the requested enhancement mode to ``raster`` in place."""
    if mode is EnhanceMode.BLACK_WHITE:
        enhance_black_white(raster, threshold_offset, min_block, block_divisor)
    elif mode is EnhanceMode.GRAYSCALE:
        enhance_grayscale(raster, low_percentile, high_percentile)
    elif mode is EnhanceMode.COLOR:
        enhance_color(raster, low_percentile, high_percentile, gamma)
    else:
        raise ValueError(f"Unsupported enhance mode: {mode}")
