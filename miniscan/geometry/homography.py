"""Planar homography estimation from four point correspondences (DLT)."""

import logging
from typing import Sequence, Tuple

import numpy as np

from miniscan.geometry.linalg import EPSILON, solve_linear_system

logger = logging.getLogger(__name__)

PointLike = Tuple[float, float]


def _as_quad(points: Sequence[PointLike], name: str) -> np.ndarray:
    quad = np.asarray(points, dtype=np.float64)
    if quad.shape != (4, 2):
        raise ValueError(f"{name} must be 4 (x, y) points, got shape {quad.shape}")
    if not np.all(np.isfinite(quad)):
        raise ValueError(f"{name} contains non-finite coordinates")
    return quad


def compute_homography(
    src_points: Sequence[PointLike],
    dst_points: Sequence[PointLike],
    epsilon: float = EPSILON,
) -> np.ndarray:
    """Compute the 3x3 projective transform mapping src_points onto dst_points.

    Each correspondence (sx, sy) -> (dx, dy) contributes two rows of an 8x8
    system in h0..h7, with h8 fixed to 1:

        h0*sx + h1*sy + h2 - h6*dx*sx - h7*dx*sy = dx
        h3*sx + h4*sy + h5 - h6*dy*sx - h7*dy*sy = dy

    Args:
        src_points: Four source points as [TL, TR, BR, BL].
        dst_points: Four destination points in the same order.
        epsilon: Pivot threshold passed to the solver.

    Returns:
        Homography as a (3, 3) float64 array with H[2, 2] == 1.

    Raises:
        SingularMatrixError: If the points are collinear or coincident.
    """
    src = _as_quad(src_points, "src_points")
    dst = _as_quad(dst_points, "dst_points")

    a = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)

    for i, ((sx, sy), (dx, dy)) in enumerate(zip(src, dst)):
        a[2 * i] = [sx, sy, 1.0, 0.0, 0.0, 0.0, -dx * sx, -dx * sy]
        b[2 * i] = dx
        a[2 * i + 1] = [0.0, 0.0, 0.0, sx, sy, 1.0, -dy * sx, -dy * sy]
        b[2 * i + 1] = dy

    h = solve_linear_system(a, b, epsilon=epsilon)
    matrix = np.append(h, 1.0).reshape(3, 3)

    logger.debug(f"Homography:\n{matrix}")

    return matrix


def project_points(matrix: np.ndarray, points: Sequence[PointLike]) -> np.ndarray:
    """Apply a homography to (N, 2) points, returning (N, 2) projected points."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    homogeneous = np.hstack([pts, np.ones((pts.shape[0], 1))]) @ np.asarray(matrix).T
    return homogeneous[:, :2] / homogeneous[:, 2:3]
