"""
Tests for the intersection and segment deriver.
"""
import pytest

from tubetrack import Intersection, Line, Point, find_intersections

from conftest import assert_line_close


@pytest.mark.unit
class TestFindIntersections:
    """Test pairwise intersections and segment splitting."""

    def test_empty(self):
        assert find_intersections([]) == ([], [])

    def test_single_line(self):
        assert find_intersections([Line.from_coords(0, 0, 10, 0)]) == ([], [])

    def test_perpendicular_pair(self):
        h = Line.from_coords(0, 50, 100, 50)
        v = Line.from_coords(50, 0, 50, 100)
        intersections, segments = find_intersections([h, v])
        assert intersections == [Intersection(Point(50, 50), h, v)]
        # Each line is crossed only once, so there is nothing to measure
        assert segments == []

    def test_corner_with_outlier(self):
        h = Line.from_coords(0, 50, 100, 50)
        v = Line.from_coords(50, 0, 50, 100)
        # Diagonal crossing h to the right of v, too short to reach v
        d = Line.from_coords(70, 40, 90, 60)
        intersections, segments = find_intersections([h, v, d])

        assert len(intersections) == 2
        assert intersections[0].line_a == h and intersections[0].line_b == v
        assert intersections[0].point == Point(50, 50)
        assert intersections[1].line_a == h and intersections[1].line_b == d
        assert intersections[1].point.x == pytest.approx(80.0)
        assert intersections[1].point.y == pytest.approx(50.0)
        assert not any({i.line_a, i.line_b} == {v, d} for i in intersections)

        assert len(segments) == 1
        assert segments[0].start == Point(50, 50)
        assert segments[0].end.x == pytest.approx(80.0)

    def test_each_crossing_recorded_once(self):
        lines = [
            Line.from_coords(0, 10, 100, 10),
            Line.from_coords(0, 90, 100, 90),
            Line.from_coords(10, 0, 10, 100),
            Line.from_coords(90, 0, 90, 100),
        ]
        intersections, segments = find_intersections(lines)
        assert len(intersections) == 4
        points = sorted((round(i.point.x, 6), round(i.point.y, 6)) for i in intersections)
        assert points == [(10, 10), (10, 90), (90, 10), (90, 90)]
        # Each side of the square is one segment
        assert len(segments) == 4
        for segment in segments:
            assert segment.length() == pytest.approx(80.0)

    def test_segments_follow_line_axis(self):
        v = Line.from_coords(50, 100, 50, 0)
        crossings = [Line.from_coords(0, y, 100, y) for y in (80, 20, 50)]
        _, segments = find_intersections([v] + crossings)
        assert len(segments) == 2
        assert_line_close(segments[0], Line.from_coords(50, 20, 50, 50))
        assert_line_close(segments[1], Line.from_coords(50, 50, 50, 80))

    def test_segments_sorted_by_x_for_shallow_lines(self):
        h = Line.from_coords(100, 50, 0, 50)
        crossings = [Line.from_coords(x, 0, x, 100) for x in (70, 10, 40)]
        _, segments = find_intersections([h] + crossings)
        assert len(segments) == 2
        assert_line_close(segments[0], Line.from_coords(10, 50, 40, 50))
        assert_line_close(segments[1], Line.from_coords(40, 50, 70, 50))

    def test_parallel_lines_do_not_intersect(self):
        lines = [Line.from_coords(0, y, 100, y) for y in (10, 20, 30)]
        assert find_intersections(lines) == ([], [])

    def test_concurrent_lines_give_zero_length_segment(self):
        h = Line.from_coords(0, 50, 100, 50)
        v = Line.from_coords(50, 0, 50, 100)
        d = Line.from_coords(0, 0, 100, 100)
        intersections, segments = find_intersections([h, v, d])
        assert len(intersections) == 3
        assert all(s.length() == pytest.approx(0.0, abs=1e-9) for s in segments)

    def test_intersection_from_points(self):
        h = Line.from_coords(0, 50, 100, 50)
        v = Line.from_coords(50, 0, 50, 100)
        intersection = Intersection.of(h, v)
        assert Intersection.from_points(intersection.to_points()) == intersection
        assert intersection.acute_angle() == pytest.approx(1.5707963267948966)
        with pytest.raises(ValueError, match="exactly 5"):
            Intersection.from_points(intersection.to_points()[:4])

    def test_intersection_of_non_crossing_lines(self):
        assert Intersection.of(Line.from_coords(0, 0, 10, 0), Line.from_coords(0, 5, 10, 5)) is None
