"""
Tests for the 2x2 geometry kernel.
"""

import numpy as np
import pytest

from cyclegraph.errors import DimensionMismatch
from cyclegraph.utils.geometry import (
    invert_2x2,
    multiply,
    point_in_quadrilateral,
    segments_parallel,
)

# east, north, south, west of the square [0, 2] x [0, 2]
SQUARE = [(2.0, 0.0), (2.0, 2.0), (0.0, 0.0), (0.0, 2.0)]


class TestMultiply:
    def test_result_shape(self):
        a = np.ones((2, 3))
        b = np.ones((3, 4))
        assert multiply(a, b).shape == (2, 4)

    def test_values(self):
        result = multiply([[1, 2], [3, 4]], [[5], [6]])
        np.testing.assert_array_equal(result, [[17.0], [39.0]])

    def test_inner_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            multiply(np.ones((2, 3)), np.ones((2, 3)))

    @pytest.mark.parametrize("empty", [[], [[]]])
    def test_empty_operand(self, empty):
        with pytest.raises(DimensionMismatch):
            multiply(empty, [[1.0]])
        with pytest.raises(DimensionMismatch):
            multiply([[1.0]], empty)

    def test_ragged_operand(self):
        with pytest.raises(DimensionMismatch):
            multiply([[1.0, 2.0], [3.0]], [[1.0], [2.0]])


class TestInvert2x2:
    def test_inverse_round_trip(self):
        rng = np.random.RandomState(7)
        for _ in range(50):
            m = rng.uniform(-10, 10, size=(2, 2))
            if abs(np.linalg.det(m)) < 1e-2:
                continue
            inv = invert_2x2(m)
            np.testing.assert_allclose(multiply(inv, m), np.eye(2), atol=1e-9)
            np.testing.assert_allclose(multiply(m, inv), np.eye(2), atol=1e-9)

    def test_singular_returns_none(self):
        assert invert_2x2([[1.0, 2.0], [2.0, 4.0]]) is None
        assert invert_2x2(np.zeros((2, 2))) is None

    def test_tiny_nonzero_determinant_is_invertible(self):
        # Exact-zero policy: no epsilon is applied
        assert invert_2x2([[1e-200, 0.0], [0.0, 1e-100]]) is not None

    def test_wrong_shape(self):
        with pytest.raises(DimensionMismatch):
            invert_2x2(np.eye(3))


class TestPointInQuadrilateral:
    @pytest.mark.parametrize("corner", SQUARE)
    def test_corners_are_inside(self, corner):
        assert point_in_quadrilateral(SQUARE, corner) is True

    def test_interior_and_edges(self):
        assert point_in_quadrilateral(SQUARE, (1.0, 1.0))
        assert point_in_quadrilateral(SQUARE, (0.0, 1.0))
        assert point_in_quadrilateral(SQUARE, (1.0, 2.0))

    @pytest.mark.parametrize("point", [(3.0, 1.0), (-0.5, 1.0), (1.0, 2.5), (1.0, -0.1)])
    def test_outside(self, point):
        assert point_in_quadrilateral(SQUARE, point) is False

    def test_degenerate_corners(self):
        collinear = [(2.0, 2.0), (3.0, 3.0), (0.0, 0.0), (1.0, 1.0)]
        assert point_in_quadrilateral(collinear, (1.0, 1.0)) is False

    def test_rotated_parallelogram(self):
        # Diamond around the origin
        corners = [(1.0, 0.0), (0.0, 1.0), (0.0, -1.0), (-1.0, 0.0)]
        assert point_in_quadrilateral(corners, (0.0, 0.0))
        assert not point_in_quadrilateral(corners, (0.9, 0.9))


class TestSegmentsParallel:
    def test_parallel(self):
        assert segments_parallel((0, 0), (1, 1), (2, 2), (5, 5))

    def test_antiparallel(self):
        assert segments_parallel((0, 0), (1, 0), (3, 1), (-2, 1))

    def test_perpendicular(self):
        assert not segments_parallel((0, 0), (1, 0), (0, 0), (0, 1))

    def test_threshold(self):
        # Cross product 5e-7 is below the threshold, 1e-6 is not
        assert segments_parallel((0, 0), (1, 0), (0, 0), (1, 5e-7))
        assert not segments_parallel((0, 0), (1, 0), (0, 0), (1, 1e-6))
