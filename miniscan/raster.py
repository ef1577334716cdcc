"""Pixel buffers passed between the scanning stages."""

import base64
from dataclasses import dataclass, field
from typing import Dict

import numpy as np


@dataclass
class Raster:
    """An 8-bit RGBA image stored row-major as a (height, width, 4) array."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(
                f"Raster pixels must have shape (H, W, 4), got {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Raster pixels must be uint8, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def blank(cls, width: int, height: int) -> "Raster":
        """Create an opaque black raster."""
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        pixels[:, :, 3] = 255
        return cls(pixels)

    @classmethod
    def from_rgb(cls, rgb: np.ndarray) -> "Raster":
        """Wrap an (H, W, 3) uint8 array, adding an opaque alpha channel."""
        if rgb.ndim != 3 or rgb.shape[2] != 3:
            raise ValueError(f"Expected (H, W, 3) array, got shape {rgb.shape}")
        alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
        return cls(np.concatenate([rgb.astype(np.uint8), alpha], axis=2))


@dataclass
class ScanResult:
    """Encoded output of a successful scan."""

    image_bytes: bytes
    width: int
    height: int
    step_times: Dict[str, float] = field(default_factory=dict, compare=False)

    def to_base64(self) -> str:
        """Return the encoded image as base64 without a data URI prefix."""
        return base64.b64encode(self.image_bytes).decode("ascii")
