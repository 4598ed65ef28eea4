"""
TubeTrack Intersection & Segment Deriver

Finds where centerlines cross and cuts each centerline into the segments that
lie between consecutive crossings.

Functions:
    find_intersections: All pairwise intersections and the segments between them
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
from typing import List, Sequence, Tuple

from .data_classes import Intersection
from .geometry import Line


def find_intersections(lines: Sequence[Line]) -> Tuple[List[Intersection], List[Line]]:
    """
    Find intersections between the given lines, and the segments between them.

    Every line is tested against every other line, so that all points lying
    on it are collected for segment-finding, but each crossing is recorded as
    an :class:`Intersection` only once, from the lower-indexed line. The
    points on a line are sorted along its dominant axis (y when
    ``|gradient| > 1``, x otherwise) and each consecutive pair becomes one
    segment. A line crossed fewer than twice yields no segments.

    Both jobs are done in one pass; otherwise every intersection would have to
    be revisited per line to find which ones lie on it.

    Args:
        lines: Centerlines for one frame (not modified)

    Returns:
        Tuple of (intersections, segments)
    """
    intersections = []
    segments = []

    for i, line_a in enumerate(lines):
        points_on_a = []

        for j, line_b in enumerate(lines):
            point = Line.intersection(line_a, line_b)
            if point is None:
                continue

            points_on_a.append(point)

            if j > i:
                intersections.append(Intersection(point, line_a, line_b))

        if len(points_on_a) < 2:
            continue

        if line_a.is_steep():
            points_on_a.sort(key=lambda p: p.y)
        else:
            points_on_a.sort(key=lambda p: p.x)

        segments.extend(Line(start, end) for start, end in zip(points_on_a, points_on_a[1:]))

    return intersections, segments
