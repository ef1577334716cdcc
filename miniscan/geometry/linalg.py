"""Small dense linear algebra used by the homography estimator.

Both routines work in float64 and refuse to divide by anything smaller
than ``epsilon`` rather than returning numerically meaningless values.
"""

import logging

import numpy as np

from miniscan.errors import SingularMatrixError

logger = logging.getLogger(__name__)

EPSILON = 1e-10


def solve_linear_system(
    a: np.ndarray,
    b: np.ndarray,
    epsilon: float = EPSILON,
) -> np.ndarray:
    """Solve ``a @ x = b`` by Gaussian elimination with partial pivoting.

    Args:
        a: Coefficient matrix, shape (n, n).
        b: Right-hand side, shape (n,).
        epsilon: Smallest pivot magnitude accepted.

    Returns:
        Solution vector x, shape (n,), float64.

    Raises:
        ValueError: If the shapes are inconsistent.
        SingularMatrixError: If a pivot falls below epsilon.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    n = b.shape[0]
    if a.shape != (n, n):
        raise ValueError(f"Expected a ({n}, {n}) coefficient matrix, got {a.shape}")

    # Augmented matrix [A | b]
    m = np.hstack([a, b.reshape(n, 1)])

    for col in range(n):
        # argmax returns the first of equal maxima
        pivot_row = col + int(np.argmax(np.abs(m[col:, col])))
        if pivot_row != col:
            m[[col, pivot_row]] = m[[pivot_row, col]]

        pivot = m[col, col]
        if abs(pivot) < epsilon:
            raise SingularMatrixError(
                f"Singular system: pivot {pivot:.3e} in column {col} is below {epsilon:.0e}"
            )

        factors = m[col + 1:, col] / pivot
        m[col + 1:, col:] -= np.outer(factors, m[col, col:])

    x = np.zeros(n, dtype=np.float64)
    for row in range(n - 1, -1, -1):
        x[row] = (m[row, n] - np.dot(m[row, row + 1:n], x[row + 1:])) / m[row, row]

    return x


def invert_3x3(matrix: np.ndarray, epsilon: float = EPSILON) -> np.ndarray:
    """Invert a 3x3 matrix with the adjugate / determinant formula.

    Raises:
        SingularMatrixError: If |det| is below epsilon.
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 matrix, got shape {matrix.shape}")

    (a, b, c), (d, e, f), (g, h, k) = matrix

    det = a * (e * k - f * h) - b * (d * k - f * g) + c * (d * h - e * g)
    if abs(det) < epsilon:
        raise SingularMatrixError(f"Matrix determinant {det:.3e} is below {epsilon:.0e}")

    adjugate = np.array([
        [e * k - f * h, c * h - b * k, b * f - c * e],
        [f * g - d * k, a * k - c * g, c * d - a * f],
        [d * h - e * g, b * g - a * h, a * e - b * d],
    ], dtype=np.float64)

    logger.debug(f"Inverted 3x3 matrix with determinant {det:.6g}")

    return adjugate / det
