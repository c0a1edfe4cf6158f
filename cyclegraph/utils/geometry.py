"""
Geometric Utility Functions
=============================

The 2x2 linear algebra kernel used by corridor matching: matrix product,
matrix inverse, point-in-quadrilateral containment and a segment
parallelism test.

Coordinates are planar ``(x, y)`` pairs with ``x = lng`` and ``y = lat``.
No map projection is applied.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from cyclegraph.errors import DimensionMismatch

Point = Tuple[float, float]

# Cross-product magnitude below which two direction vectors are parallel
PARALLEL_EPS = 8e-7


def _as_matrix(m) -> np.ndarray:
    try:
        arr = np.asarray(m, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        # Ragged nested sequences cannot form a matrix
        raise DimensionMismatch(f"Not a matrix: {exc}") from exc
    if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise DimensionMismatch(
            f"Expected a non-empty 2D matrix, got shape {arr.shape}"
        )
    return arr


def multiply(a, b) -> np.ndarray:
    """Standard matrix product ``a @ b``.

    Args:
        a: (n, k) matrix as nested sequences or an ndarray.
        b: (k, m) matrix.

    Returns:
        (n, m) ndarray.

    Raises:
        DimensionMismatch: If either operand is empty or not 2D, or the
            column count of ``a`` differs from the row count of ``b``.
    """
    a_arr = _as_matrix(a)
    b_arr = _as_matrix(b)

    if a_arr.shape[1] != b_arr.shape[0]:
        raise DimensionMismatch(
            f"Cannot multiply {a_arr.shape} by {b_arr.shape}"
        )
    return a_arr @ b_arr


def invert_2x2(m) -> Optional[np.ndarray]:
    """Inverse of a 2x2 matrix via the adjugate.

    The determinant is compared against an exact zero, not a tolerance.

    Args:
        m: 2x2 matrix.

    Returns:
        The (2, 2) inverse, or None when ``det(m) == 0``.

    Raises:
        DimensionMismatch: If ``m`` is not 2x2.
    """
    arr = _as_matrix(m)
    if arr.shape != (2, 2):
        raise DimensionMismatch(f"Expected a 2x2 matrix, got {arr.shape}")

    det = arr[0, 0] * arr[1, 1] - arr[0, 1] * arr[1, 0]
    if det == 0.0:
        return None

    inv_det = 1.0 / det
    return np.array(
        [
            [arr[1, 1] * inv_det, -arr[0, 1] * inv_det],
            [-arr[1, 0] * inv_det, arr[0, 0] * inv_det],
        ],
        dtype=np.float64,
    )


def point_in_quadrilateral(corners: Sequence[Point], point: Point) -> bool:
    """Test whether a point lies inside a parallelogram.

    ``corners`` are ordered ``[east, north, south, west]``. ``south`` is
    the origin of a local frame with basis ``u = west - south`` and
    ``v = east - south``; ``point - south`` is expressed as ``(m, n)`` in
    that frame and tested against the unit square. ``north`` is not
    read: it is implied by ``south + u + v``.

    Args:
        corners: Four ``(x, y)`` corners in east, north, south, west order.
        point: ``(x, y)`` query point.

    Returns:
        True if ``0 <= m <= 1`` and ``0 <= n <= 1`` (boundary inclusive).
        False if the corners are degenerate (singular basis).
    """
    east, _north, south, west = corners

    u = (west[0] - south[0], west[1] - south[1])
    v = (east[0] - south[0], east[1] - south[1])
    inverse = invert_2x2([[u[0], v[0]], [u[1], v[1]]])
    if inverse is None:
        return False

    local = multiply(
        inverse, [[point[0] - south[0]], [point[1] - south[1]]]
    )
    m = local[0, 0]
    n = local[1, 0]
    return bool(0.0 <= m <= 1.0 and 0.0 <= n <= 1.0)


def segments_parallel(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    """Check whether segments ``a1->a2`` and ``b1->b2`` are parallel.

    Args:
        a1, a2: Endpoints of the first segment.
        b1, b2: Endpoints of the second segment.

    Returns:
        True if the cross product of the direction vectors has magnitude
        below ``PARALLEL_EPS``.
    """
    ax = a2[0] - a1[0]
    ay = a2[1] - a1[1]
    bx = b2[0] - b1[0]
    by = b2[1] - b1[1]
    return abs(ax * by - ay * bx) < PARALLEL_EPS
