"""Document corners and the destination geometry derived from them."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

CORNER_KEYS = ("tl", "tr", "br", "bl")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Point2D:
    """A point in either normalized or pixel coordinates."""

    x: float
    y: float

    def distance_to(self, other: "Point2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class CornerSet:
    """Four document corners in normalized [0, 1] image coordinates.

    Order is always top-left, top-right, bottom-right, bottom-left. The
    quadrilateral is expected to be simple and non-degenerate; that is not
    checked here, the homography solver reports it.
    """

    tl: Point2D
    tr: Point2D
    br: Point2D
    bl: Point2D

    def __post_init__(self) -> None:
        for key in CORNER_KEYS:
            point = getattr(self, key)
            if not (math.isfinite(point.x) and math.isfinite(point.y)):
                raise ValueError(f"Corner '{key}' has non-finite coordinates: {point}")

    @classmethod
    def default(cls) -> "CornerSet":
        """Inset corners covering the central 80% of the image."""
        return cls(
            tl=Point2D(0.1, 0.1),
            tr=Point2D(0.9, 0.1),
            br=Point2D(0.9, 0.9),
            bl=Point2D(0.1, 0.9),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CornerSet":
        """Build from ``{"tl": {"x": .., "y": ..}, "tr": .., "br": .., "bl": ..}``."""
        missing = [key for key in CORNER_KEYS if key not in data]
        if missing:
            raise ValueError(f"Missing corners: {', '.join(missing)}")

        points = {}
        for key in CORNER_KEYS:
            corner = data[key]
            try:
                points[key] = Point2D(float(corner["x"]), float(corner["y"]))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid corner '{key}': {corner!r}") from e

        return cls(**points)

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "CornerSet":
        """Build from a flat sequence tl_x, tl_y, tr_x, tr_y, br_x, br_y, bl_x, bl_y."""
        if len(values) != 8:
            raise ValueError(f"Expected 8 coordinates, got {len(values)}")
        coords = [float(v) for v in values]
        return cls(*(Point2D(coords[i], coords[i + 1]) for i in range(0, 8, 2)))

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {key: {"x": getattr(self, key).x, "y": getattr(self, key).y} for key in CORNER_KEYS}

    def clamped(self) -> "CornerSet":
        """Return a copy with every coordinate clamped into [0, 1]."""
        def _clamp(p: Point2D) -> Point2D:
            return Point2D(min(1.0, max(0.0, p.x)), min(1.0, max(0.0, p.y)))

        return CornerSet(*(_clamp(getattr(self, key)) for key in CORNER_KEYS))

    def to_absolute(self, width: int, height: int) -> np.ndarray:
        """Convert to pixel coordinates as a (4, 2) float64 array [TL, TR, BR, BL]."""
        return np.array(
            [[getattr(self, key).x * width, getattr(self, key).y * height] for key in CORNER_KEYS],
            dtype=np.float64,
        )


def compute_output_dimensions(
    corners: np.ndarray,
    min_dimension: int = 100,
    max_dimension: int = 3000,
) -> Tuple[int, int]:
    """Compute the rectified page size from absolute corner positions.

    Uses the longer of each pair of opposite edges, raises each side to
    ``min_dimension`` and, if either side then exceeds ``max_dimension``,
    scales both down uniformly so the longer side equals ``max_dimension``.

    Args:
        corners: Absolute corner points (4, 2) as [TL, TR, BR, BL].
        min_dimension: Smallest allowed width/height.
        max_dimension: Largest allowed width/height.

    Returns:
        (width, height) in pixels.

    Raises:
        ValueError: If a corner or an edge length is not finite.
    """
    tl, tr, br, bl = (Point2D(float(x), float(y)) for x, y in corners)

    edge_width = max(tl.distance_to(tr), bl.distance_to(br))
    edge_height = max(tl.distance_to(bl), tr.distance_to(br))
    if not (np.all(np.isfinite(corners)) and math.isfinite(edge_width) and math.isfinite(edge_height)):
        raise ValueError(f"Corners do not describe a finite region: {np.asarray(corners).tolist()}")

    raw_width = round_half_up(edge_width)
    raw_height = round_half_up(edge_height)

    width = max(raw_width, min_dimension)
    height = max(raw_height, min_dimension)

    if width != raw_width or height != raw_height:
        logger.warning(
            f"Selected region {raw_width}x{raw_height} is below the minimum "
            f"{min_dimension}px, clamped to {width}x{height}"
        )

    if width > max_dimension or height > max_dimension:
        scale = max_dimension / max(width, height)
        capped = (
            max(1, round_half_up(width * scale)),
            max(1, round_half_up(height * scale)),
        )
        logger.warning(
            f"Output {width}x{height} exceeds {max_dimension}px, "
            f"downscaled to {capped[0]}x{capped[1]} (scale: {scale:.3f})"
        )
        width, height = capped

    return width, height


def destination_rectangle(width: int, height: int) -> np.ndarray:
    """Destination corners (0,0), (w,0), (w,h), (0,h) in TL, TR, BR, BL order."""
    return np.array([
        [0, 0],
        [width, 0],
        [width, height],
        [0, height],
    ], dtype=np.float64)
