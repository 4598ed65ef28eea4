"""
TubeTrack Data Classes

This module defines the data structures produced by the TubeTrack pipeline
for each frame.

Classes:
    Intersection: Crossing point of two centerlines, with the lines themselves
    MeasuredSegment: Image-space segment with its world-space length
    MeasuredAngle: Intersection with its world-space crossing angle
    FrameMeasurements: Everything the pipeline produces for one frame

Note:
    Point and Line live in geometry.py, next to the operations that use them.
"""

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .geometry import Line, Point, PointLike, as_point


@dataclass(frozen=True)
class Intersection:
    """Crossing point of two centerlines.

    The lines are kept so that the crossing angle can be measured after both
    have been transformed to world space.

    Attributes:
        point (Point): Where the lines cross, in image space
        line_a (Line): First line through the point
        line_b (Line): Second line through the point

    Example:
        >>> a = Line.from_coords(0, 5, 10, 5)
        >>> b = Line.from_coords(5, 0, 5, 10)
        >>> Intersection.of(a, b).point
        Point(x=5.0, y=5.0)
    """

    point: Point
    line_a: Line
    line_b: Line

    def __post_init__(self):
        object.__setattr__(self, "point", as_point(self.point))

    @classmethod
    def of(cls, line_a: Line, line_b: Line):
        """Intersect two lines; returns None when they do not cross."""
        point = Line.intersection(line_a, line_b)
        if point is None:
            return None
        return cls(point, line_a, line_b)

    def to_points(self) -> Tuple[Point, Point, Point, Point, Point]:
        """Flatten to five points: line_a start/end, line_b start/end, crossing point."""
        return (self.line_a.start, self.line_a.end, self.line_b.start, self.line_b.end, self.point)

    @classmethod
    def from_points(cls, points: Sequence[PointLike]) -> "Intersection":
        """Rebuild an intersection from the five points of :meth:`to_points`."""
        if len(points) != 5:
            raise ValueError(f"Incorrect number of points, must be exactly 5 (got {len(points)})")
        return cls(points[4], Line(points[0], points[1]), Line(points[2], points[3]))

    def acute_angle(self) -> float:
        """Acute angle between the two lines in image space."""
        return Line.acute_angle_between(self.line_a, self.line_b)


@dataclass(frozen=True)
class MeasuredSegment:
    """A centerline segment and its real-world length.

    Attributes:
        segment (Line): Segment in image space, for drawing
        world_segment (Line): Segment after the image-to-world transform
        length (float): Length of ``world_segment`` in world units
    """

    segment: Line
    world_segment: Line
    length: float


@dataclass(frozen=True)
class MeasuredAngle:
    """An intersection and its real-world crossing angle.

    Attributes:
        intersection (Intersection): Intersection in image space, for drawing
        world_intersection (Intersection): Intersection after the image-to-world transform
        angle (float): Acute angle between the world-space lines, in radians
    """

    intersection: Intersection
    world_intersection: Intersection
    angle: float

    @property
    def degrees(self) -> float:
        return math.degrees(self.angle)


@dataclass
class FrameMeasurements:
    """Output of one run of the measurement pipeline.

    Attributes:
        frame_index (int): 1-based index of the frame within the tracker's lifetime
        tracked_lines (List[Line]): Temporally smoothed edges
        centerlines (List[Line]): Tube centerlines, sorted by descending angle
        intersections (List[Intersection]): Centerline crossings in image space
        segments (List[Line]): Centerline pieces between consecutive crossings
        angles (List[MeasuredAngle]): World-space angle for each intersection
        lengths (List[MeasuredSegment]): World-space length for each segment
        units (str): Unit of the lengths ("px" when no homography is set)
    """

    frame_index: int
    tracked_lines: List[Line] = field(default_factory=list)
    centerlines: List[Line] = field(default_factory=list)
    intersections: List[Intersection] = field(default_factory=list)
    segments: List[Line] = field(default_factory=list)
    angles: List[MeasuredAngle] = field(default_factory=list)
    lengths: List[MeasuredSegment] = field(default_factory=list)
    units: str = "px"

    def summary(self) -> str:
        """Short human-readable description, e.g. for logging."""
        parts = [f"{m.length:.2f}{self.units}" for m in self.lengths]
        parts += [f"{m.degrees:.2f}deg" for m in self.angles]
        return (
            f"frame {self.frame_index}: {len(self.tracked_lines)} lines, "
            f"{len(self.centerlines)} centerlines, {len(self.intersections)} intersections"
            + (f" [{', '.join(parts)}]" if parts else "")
        )
