"""Pixel enhancement package: thresholding and contrast normalization."""

from miniscan.enhance.modes import (
    EnhanceMode,
    apply_enhancement,
    enhance_black_white,
    enhance_color,
    enhance_grayscale,
    percentile_bounds,
    stretch_contrast,
)
from miniscan.enhance.threshold import (
    adaptive_threshold,
    compute_block_size,
    integral_image,
    to_luminance,
)

__all__ = [
    'EnhanceMode',
    'apply_enhancement',
    'enhance_black_white',
    'enhance_color',
    'enhance_grayscale',
    'percentile_bounds',
    'stretch_contrast',
    'adaptive_threshold',
    'compute_block_size',
    'integral_image',
    'to_luminance',
]
