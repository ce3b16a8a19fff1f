"""
Linear Algebra Kernel for the FX Rate Forecasting Engine

Dense matrix helpers used by the autoregressive fitter to form and solve the
least-squares normal equations (XᵀX)β = Xᵀy.

Functions:
    - transpose: Matrix transpose
    - multiply: Matrix product with shape checking
    - solve_linear_system: Gauss-Jordan elimination with partial pivoting

A system whose pivot falls below the singular threshold is treated as
degenerate and solved as the zero vector instead of raising, so a degenerate
fit produces a flat forecast rather than an error.
"""

import numpy as np

from fx_forecaster.exceptions import ShapeError
from fx_forecaster.logger_config import get_logger


logger = get_logger(__name__)

SINGULAR_THRESHOLD = 1e-8


def _as_matrix(matrix, name: str) -> np.ndarray:
    """Convert to a 2D float array, raising ShapeError otherwise."""
    array = np.asarray(matrix, dtype=np.float64)
    if array.ndim != 2:
        error_msg = f"{name} must be a 2D matrix, got {array.ndim}D with shape {array.shape}"
        logger.error(error_msg)
        raise ShapeError(error_msg)
    return array


def transpose(matrix) -> np.ndarray:
    """
    Return the transpose of a matrix.

    Args:
        matrix (array-like): 2D matrix of shape (m, n)

    Returns:
        np.ndarray: New matrix of shape (n, m)

    Raises:
        ShapeError: If matrix is not 2D

    Examples:
        >>> transpose([[1, 2, 3], [4, 5, 6]]).tolist()
        [[1.0, 4.0], [2.0, 5.0], [3.0, 6.0]]
    """
    return _as_matrix(matrix, "matrix").T.copy()


def multiply(a, b) -> np.ndarray:
    """
    Multiply two matrices.

    Args:
        a (array-like): Left matrix of shape (m, k)
        b (array-like): Right matrix of shape (k, n)

    Returns:
        np.ndarray: Product of shape (m, n)

    Raises:
        ShapeError: If either operand is not 2D or inner dimensions differ

    Examples:
        >>> multiply([[1, 2], [3, 4]], [[5], [6]]).tolist()
        [[17.0], [39.0]]
    """
    left = _as_matrix(a, "a")
    right = _as_matrix(b, "b")

    if left.shape[1] != right.shape[0]:
        error_msg = (
            f"Cannot multiply {left.shape} by {right.shape}: "
            f"inner dimensions {left.shape[1]} != {right.shape[0]}"
        )
        logger.error(error_msg)
        raise ShapeError(error_msg, left_shape=left.shape, right_shape=right.shape)

    return left @ right


def solve_linear_system(a, b, singular_threshold: float = SINGULAR_THRESHOLD) -> np.ndarray:
    """
    Solve A·x = b by Gauss-Jordan elimination with partial pivoting.

    For each column the row with the largest absolute value at or below the
    diagonal is swapped into the pivot position. The pivot row is scaled to 1
    and the column is cleared from every other row. The inputs are not modified.

    If a pivot's magnitude is below singular_threshold the system is
    considered singular and a zero vector of length n is returned.

    Args:
        a (array-like): Square coefficient matrix of shape (n, n)
        b (array-like): Right-hand side of length n
        singular_threshold (float): Smallest pivot magnitude accepted

    Returns:
        np.ndarray: Solution vector of length n (zeros when degenerate)

    Raises:
        ShapeError: If a is not square or b does not have n entries

    Examples:
        >>> solve_linear_system([[2, 1], [1, 3]], [3, 5]).round(6).tolist()
        [0.8, 1.4]
        >>> solve_linear_system([[1, 2], [2, 4]], [3, 6]).tolist()
        [0.0, 0.0]
    """
    matrix = _as_matrix(a, "A")
    rhs = np.asarray(b, dtype=np.float64).reshape(-1)
    n = matrix.shape[0]

    if matrix.shape[1] != n:
        error_msg = f"Coefficient matrix must be square, got shape {matrix.shape}"
        logger.error(error_msg)
        raise ShapeError(error_msg)

    if rhs.shape[0] != n:
        error_msg = f"Right-hand side has {rhs.shape[0]} entries, expected {n}"
        logger.error(error_msg)
        raise ShapeError(error_msg, left_shape=matrix.shape, right_shape=rhs.shape)

    augmented = np.hstack([matrix, rhs[:, np.newaxis]])

    for i in range(n):
        max_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if max_row != i:
            augmented[[i, max_row]] = augmented[[max_row, i]]

        pivot = augmented[i, i]
        if abs(pivot) < singular_threshold:
            logger.warning(
                f"Degenerate linear system: pivot {pivot:.3e} in column {i} is below "
                f"{singular_threshold:.0e}; returning zero solution of length {n}"
            )
            return np.zeros(n, dtype=np.float64)

        augmented[i, i:] /= pivot

        factors = augmented[:, i].copy()
        factors[i] = 0.0
        augmented[:, i:] -= np.outer(factors, augmented[i, i:])

    return augmented[:, n].copy()
