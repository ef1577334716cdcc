"""Luminance conversion and integral-image adaptive thresholding."""

import logging

import numpy as np

from miniscan.geometry.corners import round_half_up

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def to_luminance(pixels: np.ndarray) -> np.ndarray:
    """Convert an (H, W, 3+) RGB(A) uint8 array to float64 luminance (H, W)."""
    return pixels[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS


def compute_block_size(width: int, height: int, min_block: int = 15, divisor: int = 8) -> int:
    """Threshold window size: an eighth of the short side, odd, at least min_block."""
    block = round_half_up(min(width, height) / divisor) | 1
    return max(min_block, block)


def integral_image(gray: np.ndarray) -> np.ndarray:
    """Summed-area table of shape (H + 1, W + 1) with a zero first row and column."""
    height, width = gray.shape
    table = np.zeros((height + 1, width + 1), dtype=np.float64)
    table[1:, 1:] = gray.astype(np.float64).cumsum(axis=0).cumsum(axis=1)
    return table


def adaptive_threshold(gray: np.ndarray, block_size: int, offset: float) -> np.ndarray:
    """Binarize against the local mean of a centred block_size window.

    The window is clipped at the image border and the mean divides by the
    clipped area. A pixel becomes 0 (ink) when it is darker than
    ``mean - offset`` and 255 (paper) otherwise.

    Args:
        gray: Luminance values, shape (H, W).
        block_size: Window side length in pixels.
        offset: Constant C subtracted from the local mean.

    Returns:
        uint8 array of shape (H, W) containing only 0 and 255.
    """
    if gray.ndim != 2:
        raise ValueError(f"Expected a 2D luminance array, got shape {gray.shape}")
    if block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")

    height, width = gray.shape
    table = integral_image(gray)
    half = block_size // 2

    xs = np.arange(width)
    ys = np.arange(height)
    x1 = np.maximum(0, xs - half)
    x2 = np.minimum(width - 1, xs + half)
    y1 = np.maximum(0, ys - half)
    y2 = np.minimum(height - 1, ys + half)

    window_sum = (
        table[np.ix_(y2 + 1, x2 + 1)]
        - table[np.ix_(y1, x2 + 1)]
        - table[np.ix_(y2 + 1, x1)]
        + table[np.ix_(y1, x1)]
    )
    area = np.outer(y2 - y1 + 1, x2 - x1 + 1)
    mean = window_sum / area

    logger.debug(f"Adaptive threshold: block_size={block_size}, offset={offset}")

    return np.where(gray < mean - offset, 0, 255).astype(np.uint8)
