"""MiniScan - turn a photographed document into a clean, rectified page image."""

from miniscan.errors import (
    ScanError,
    SingularMatrixError,
    SingularTransformError,
    UninvertibleTransformError,
    DecodeError,
)
from miniscan.raster import Raster, ScanResult
from miniscan.geometry.corners import CornerSet, Point2D
from miniscan.enhance.modes import EnhanceMode
from miniscan.pipeline import Scanner, ScanConfig

__version__ = "0.1.0"

__all__ = [
    "ScanError",
    "SingularMatrixError",
    "SingularTransformError",
    "UninvertibleTransformError",
    "DecodeError",
    "Raster",
    "ScanResult",
    "CornerSet",
    "Point2D",
    "EnhanceMode",
    "Scanner",
    "ScanConfig",
]
