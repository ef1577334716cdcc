"""Homography estimation and perspective warping."""

from miniscan.geometry.corners import (
    CornerSet,
    Point2D,
    compute_output_dimensions,
    destination_rectangle,
)
from miniscan.geometry.homography import compute_homography, project_points
from miniscan.geometry.linalg import invert_3x3, solve_linear_system
from miniscan.geometry.warp import warp_perspective

__all__ = [
    "CornerSet",
    "Point2D",
    "compute_output_dimensions",
    "destination_rectangle",
    "compute_homography",
    "project_points",
    "invert_3x3",
    "solve_linear_system",
    "warp_perspective",
]
