"""
TubeTrack Geometry Primitives

This module defines the immutable 2D point and line-segment value types that
every other TubeTrack component is built on. All operations return new values;
nothing in this module mutates an existing object.

Classes:
    Point: Immutable (x, y) coordinate in image or world space
    Line: Immutable directed line segment with geometric operations

Functions:
    as_point: Coerce a Point or an (x, y) sequence to a Point
    as_line: Coerce a Line, an (x1, y1, x2, y2) sequence or a pair of points to a Line
    lines_to_array: Pack a list of lines into an (N, 4) float64 array
    lines_from_array: Unpack an (N, 4) array back into a list of lines
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
import math
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np


# ============================================================================
# POINT
# ============================================================================
class Point(NamedTuple):
    """A 2D coordinate. Immutable, so it can be handed out without copying."""

    x: float
    y: float


PointLike = Union[Point, Sequence[float]]


def as_point(value: PointLike) -> Point:
    if isinstance(value, Point):
        return value
    if len(value) != 2:
        raise ValueError(f"A point needs exactly 2 coordinates, got {len(value)}")
    return Point(float(value[0]), float(value[1]))


# ============================================================================
# LINE
# ============================================================================
@dataclass(frozen=True)
class Line:
    """A straight line segment from ``start`` to ``end``.

    Lines are immutable value objects: two lines are equal when their
    coordinates are equal, and every transformation (``reversed``,
    ``x_rectified``, ``extended``...) returns a new line. Direction matters for
    :meth:`angle` and :meth:`angle_between` but not for :meth:`length` or
    :meth:`midpoint`.

    Attributes:
        start (Point): Start point of the segment
        end (Point): End point of the segment

    Example:
        >>> line = Line.from_coords(0, 0, 10, 0)
        >>> line.length()
        10.0
        >>> line.extended(1.0)
        Line(start=Point(x=-5.0, y=0.0), end=Point(x=15.0, y=0.0))
    """

    start: Point
    end: Point

    def __post_init__(self):
        # Normalise whatever was passed in to float Points
        object.__setattr__(self, "start", as_point(self.start))
        object.__setattr__(self, "end", as_point(self.end))

    @classmethod
    def from_coords(cls, x1: float, y1: float, x2: float, y2: float) -> "Line":
        """Create a line from raw start and end coordinates."""
        return cls(Point(float(x1), float(y1)), Point(float(x2), float(y2)))

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return the line as ``(x1, y1, x2, y2)``."""
        return (self.start.x, self.start.y, self.end.x, self.end.y)

    # ------------------------------------------------------------------------
    # Scalar properties
    # ------------------------------------------------------------------------

    def midpoint(self) -> Point:
        return Point((self.start.x + self.end.x) / 2, (self.start.y + self.end.y) / 2)

    def length(self) -> float:
        return math.hypot(self.end.x - self.start.x, self.end.y - self.start.y)

    def angle(self) -> float:
        """Angle to the positive x axis, anticlockwise positive, in (-pi, pi]."""
        return math.atan2(self.end.y - self.start.y, self.end.x - self.start.x)

    def direction(self) -> Point:
        """Vector from start to end."""
        return Point(self.end.x - self.start.x, self.end.y - self.start.y)

    def gradient(self) -> float:
        """dy/dx of the line.

        Vertical lines give a signed infinity and zero-length lines give NaN;
        callers must not assume the result is finite.
        """
        dx = self.end.x - self.start.x
        dy = self.end.y - self.start.y
        if dx == 0:
            if dy == 0:
                return math.nan
            return math.copysign(math.inf, dy)
        return dy / dx

    def is_steep(self) -> bool:
        """True when ``|gradient| > 1``, i.e. y is the line's dominant axis."""
        return abs(self.gradient()) > 1

    # ------------------------------------------------------------------------
    # Point queries
    # ------------------------------------------------------------------------

    def distance_to(self, point: PointLike) -> float:
        """Perpendicular distance from the infinite extension of this line to a point."""
        hypot = Line(self.start, point)
        return hypot.length() * math.sin(Line.acute_angle_between(self, hypot))

    def fraction_along(self, point: PointLike) -> float:
        """Signed fraction along this line of the foot of the perpendicular from ``point``.

        Values below 0 or above 1 lie beyond the start or end of the segment.
        """
        point = as_point(point)
        dx, dy = self.end.x - self.start.x, self.end.y - self.start.y
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            return 0.0
        return ((point.x - self.start.x) * dx + (point.y - self.start.y) * dy) / length_sq

    def nearest_point_to(self, point: PointLike) -> Point:
        """Point on the infinite extension of this line closest to ``point``."""
        t = self.fraction_along(point)
        return Point(
            self.start.x + (self.end.x - self.start.x) * t,
            self.start.y + (self.end.y - self.start.y) * t,
        )

    # ------------------------------------------------------------------------
    # Unary operations (past tense: these return copies)
    # ------------------------------------------------------------------------

    def reversed(self) -> "Line":
        return Line(self.end, self.start)

    def x_rectified(self) -> "Line":
        """Copy whose start has the smaller x coordinate (angle in [-pi/2, pi/2])."""
        if self.start.x > self.end.x:
            return Line(self.end, self.start)
        return self

    def y_rectified(self) -> "Line":
        """Copy whose start has the smaller y coordinate (angle in [0, pi])."""
        if self.start.y > self.end.y:
            return Line(self.end, self.start)
        return self

    def rectified(self, compare_ys: bool) -> "Line":
        return self.y_rectified() if compare_ys else self.x_rectified()

    def rectified_by_gradient(self) -> "Line":
        """Rectify along this line's own dominant axis."""
        return self.rectified(self.is_steep())

    def extended(self, fraction: float, end_fraction: Optional[float] = None) -> "Line":
        """Copy of this line lengthened by a fraction of its own length.

        With one argument the extension is split equally between both ends, so
        the new length is ``length * (1 + fraction)``. With two arguments the
        first applies beyond the start and the second beyond the end. Negative
        fractions shorten the line; ``extended(-2)`` is ``reversed()`` and a
        fraction of -1 at one end collapses that end onto the opposite endpoint.

        Args:
            fraction: Total fraction, or the start fraction if ``end_fraction`` is given
            end_fraction: Fraction to extend beyond the end point

        Returns:
            The extended line
        """
        if end_fraction is None:
            start_fraction = end_fraction = fraction / 2
        else:
            start_fraction = fraction
        dx = self.end.x - self.start.x
        dy = self.end.y - self.start.y
        return Line.from_coords(
            self.start.x - dx * start_fraction,
            self.start.y - dy * start_fraction,
            self.end.x + dx * end_fraction,
            self.end.y + dy * end_fraction,
        )

    # ------------------------------------------------------------------------
    # Binary operations
    # ------------------------------------------------------------------------

    @staticmethod
    def equidistant(l: "Line", m: "Line") -> "Line":
        """Line midway between ``l`` and ``m``.

        Both lines are rectified along the same axis, chosen by whichever of
        the two has the larger gradient magnitude, and their corresponding
        endpoints are averaged. The result is a bimedian of the quadrilateral
        formed by the four endpoints.
        """
        compare_ys = max(abs(l.gradient()), abs(m.gradient())) > 1
        l = l.rectified(compare_ys)
        m = m.rectified(compare_ys)
        return Line.from_coords(
            (l.start.x + m.start.x) / 2,
            (l.start.y + m.start.y) / 2,
            (l.end.x + m.end.x) / 2,
            (l.end.y + m.end.y) / 2,
        )

    @staticmethod
    def angle_between(l: "Line", m: "Line") -> float:
        """Angle between two directed lines, in [0, pi]."""
        diff = abs(l.angle() - m.angle())
        return min(diff, 2 * math.pi - diff)

    @staticmethod
    def acute_angle_between(l: "Line", m: "Line") -> float:
        diff = Line.angle_between(l, m)
        return min(diff, math.pi - diff)

    @staticmethod
    def obtuse_angle_between(l: "Line", m: "Line") -> float:
        diff = Line.angle_between(l, m)
        return max(diff, math.pi - diff)

    @staticmethod
    def intersection(l: "Line", m: "Line") -> Optional[Point]:
        """Point where two segments cross, or None.

        Parametric test: t is the fraction along ``l`` and u the fraction along
        ``m``. Returns None when the determinant is exactly zero (parallel or
        coincident) or when either parameter lies outside [0, 1]. There is no
        tolerance; widen the segments with :meth:`extended` beforehand if needed.
        """
        dx1 = l.end.x - l.start.x
        dy1 = l.end.y - l.start.y
        dx2 = m.end.x - m.start.x
        dy2 = m.end.y - m.start.y
        # Imaginary third line joining the two start points
        dx3 = m.start.x - l.start.x
        dy3 = m.start.y - l.start.y

        det = dy2 * dx1 - dy1 * dx2
        if det == 0:
            return None

        t = (dx3 * dy2 - dy3 * dx2) / det
        u = (dx3 * dy1 - dy3 * dx1) / det

        if t < 0 or t > 1 or u < 0 or u > 1:
            return None

        return Point(l.start.x + t * dx1, l.start.y + t * dy1)


LineLike = Union[Line, Sequence[float], Tuple[PointLike, PointLike], np.ndarray]


# ============================================================================
# CONVERSION HELPERS
# ============================================================================

def as_line(value: LineLike) -> Line:
    """Coerce a raw detection to a :class:`Line`.

    Accepts a Line, an ``(x1, y1, x2, y2)`` sequence/array (such as one row of
    ``cv2.HoughLinesP`` output after squeezing) or a pair of points.
    """
    if isinstance(value, Line):
        return value
    flat = np.asarray(value, dtype=np.float64).reshape(-1)
    if flat.shape[0] != 4:
        raise ValueError(f"A line needs exactly 4 coordinates, got {flat.shape[0]}")
    return Line.from_coords(flat[0], flat[1], flat[2], flat[3])


def lines_to_array(lines: Iterable[Line]) -> np.ndarray:
    """Pack lines into a contiguous (N, 4) float64 array of x1, y1, x2, y2."""
    rows = [line.as_tuple() for line in lines]
    if not rows:
        return np.zeros((0, 4), dtype=np.float64)
    return np.ascontiguousarray(rows, dtype=np.float64)


def lines_from_array(array: np.ndarray) -> List[Line]:
    """Unpack an (N, 4) array back into lines. Inverse of :func:`lines_to_array`."""
    array = np.asarray(array, dtype=np.float64)
    if array.size == 0:
        return []
    array = array.reshape(-1, 4)
    return [Line.from_coords(*row) for row in array.tolist()]
