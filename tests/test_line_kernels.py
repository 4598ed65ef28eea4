"""
Tests for the Numba line kernels, checked against the scalar Line operations.
"""
import math

import numpy as np
import pytest

from tubetrack import Line, lines_to_array
from tubetrack.line_kernels import (
    acute_angle,
    coincidence_mask,
    fraction_along,
    fuse_cluster,
    is_steep,
    pair_cost_matrix,
    perpendicular_distance,
    rectify_lines,
    segment_angles,
)


@pytest.fixture
def random_lines():
    rng = np.random.default_rng(7)
    return [Line.from_coords(*rng.uniform(0, 500, 4)) for _ in range(20)]


@pytest.mark.unit
class TestScalarKernels:
    """Scalar kernels must agree with the Line methods."""

    def test_angles_match(self, random_lines):
        angles = segment_angles(lines_to_array(random_lines))
        np.testing.assert_allclose(angles, [line.angle() for line in random_lines])

    def test_acute_angle_matches(self, random_lines):
        for a, b in zip(random_lines, random_lines[1:]):
            assert acute_angle(a.angle(), b.angle()) == pytest.approx(Line.acute_angle_between(a, b))

    def test_perpendicular_distance_matches(self, random_lines):
        for a, b in zip(random_lines, random_lines[1:]):
            mid = b.midpoint()
            expected = a.distance_to(mid)
            actual = perpendicular_distance(np.array(a.as_tuple()), mid.x, mid.y)
            assert actual == pytest.approx(expected)

    def test_fraction_along_matches(self, random_lines):
        for a, b in zip(random_lines, random_lines[1:]):
            expected = a.fraction_along(b.end)
            actual = fraction_along(np.array(a.as_tuple()), b.end.x, b.end.y)
            assert actual == pytest.approx(expected)

    def test_fraction_along_is_exact(self):
        line = np.array([0.0, 0.0, 0.0, 200.0])
        assert fraction_along(line, 7.0, 50.0) == 0.25
        assert fraction_along(line, 0.0, 0.0) == 0.0
        assert fraction_along(line, 3.0, 200.0) == 1.0

    def test_fraction_along_zero_length(self):
        assert fraction_along(np.array([1.0, 1.0, 1.0, 1.0]), 5.0, 5.0) == 0.0

    def test_is_steep_matches(self, random_lines):
        for line in random_lines:
            assert is_steep(np.array(line.as_tuple())) == line.is_steep()
        assert is_steep(np.array([0.0, 0.0, 0.0, 5.0]))
        assert not is_steep(np.array([2.0, 2.0, 2.0, 2.0]))


@pytest.mark.unit
class TestBatchKernels:
    """Test the array kernels used by the tracker and the centerline deriver."""

    def test_rectify_lines(self):
        lines = np.array([[10.0, 0.0, 0.0, 5.0], [0.0, 9.0, 5.0, 1.0]])
        by_x = rectify_lines(lines, False)
        by_y = rectify_lines(lines, True)
        np.testing.assert_array_equal(by_x, [[0.0, 5.0, 10.0, 0.0], [0.0, 9.0, 5.0, 1.0]])
        np.testing.assert_array_equal(by_y, [[10.0, 0.0, 0.0, 5.0], [5.0, 1.0, 0.0, 9.0]])
        # Input is left untouched
        assert lines[0, 0] == 10.0

    def test_rectify_matches_line_methods(self, random_lines):
        array = lines_to_array(random_lines)
        np.testing.assert_array_equal(
            rectify_lines(array, False), lines_to_array([l.x_rectified() for l in random_lines])
        )
        np.testing.assert_array_equal(
            rectify_lines(array, True), lines_to_array([l.y_rectified() for l in random_lines])
        )

    def test_coincidence_mask(self):
        reference = np.array([0.0, 0.0, 100.0, 0.0])
        lines = np.array([
            [10.0, 3.0, 90.0, 3.0],     # close and parallel
            [10.0, 30.0, 90.0, 30.0],   # parallel but too far
            [50.0, -40.0, 50.0, 40.0],  # close but perpendicular
            [200.0, 2.0, 300.0, 4.0],   # on the extension, slightly tilted
        ])
        mask = coincidence_mask(reference, lines, 10.0, math.radians(10))
        assert mask.tolist() == [True, False, False, True]

    def test_coincidence_thresholds_are_strict(self):
        reference = np.array([0.0, 0.0, 100.0, 0.0])
        lines = np.array([[-10.0, 10.0, 10.0, 10.0]])
        assert not coincidence_mask(reference, lines, 10.0, 0.1)[0]
        assert coincidence_mask(reference, lines, 10.5, 0.1)[0]

    def test_fuse_single_line_is_identity(self):
        cluster = np.array([[0.0, 0.0, 100.0, 20.0]])
        np.testing.assert_allclose(fuse_cluster(cluster, False), cluster[0], atol=1e-9)

    def test_fuse_spans_full_extent(self):
        cluster = np.array([
            [0.0, 0.0, 60.0, 0.0],
            [40.0, 2.0, 100.0, 2.0],
        ])
        fused = fuse_cluster(cluster, False)
        np.testing.assert_allclose(fused, [0.0, 1.0, 100.0, 1.0], atol=1e-9)

    def test_fuse_vertical_cluster(self):
        cluster = np.array([
            [10.0, 0.0, 10.0, 50.0],
            [12.0, 30.0, 12.0, 90.0],
        ])
        fused = fuse_cluster(cluster, True)
        np.testing.assert_allclose(fused, [11.0, 0.0, 11.0, 90.0], atol=1e-9)

    def test_pair_cost_matrix(self):
        lines = np.array([
            [0.0, 0.0, 100.0, 0.0],
            [0.0, 40.0, 100.0, 40.0],
            [0.0, 200.0, 100.0, 200.0],
            [50.0, 0.0, 50.0, 100.0],
        ])
        costs = pair_cost_matrix(lines, 50.0, math.radians(5))
        assert costs.shape == (4, 4)
        assert np.all(np.isinf(np.diag(costs)))
        assert costs[0, 1] == pytest.approx(40.0)
        assert costs[1, 0] == pytest.approx(40.0)
        # Too far apart
        assert np.isinf(costs[1, 2])
        # Not parallel
        assert np.isinf(costs[0, 3])
        assert np.isinf(costs[3, 0])

    def test_pair_cost_matrix_empty(self):
        assert pair_cost_matrix(np.zeros((0, 4)), 50.0, 0.1).shape == (0, 0)
