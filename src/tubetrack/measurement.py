"""
TubeTrack Measurement Module

This module turns image-space geometry into real-world measurements and runs
the full per-frame pipeline:

    raw segments -> tracked lines -> centerlines -> (intersections, segments)
    -> world-space angles and lengths

"Image space" is the undistorted camera frame in pixels. "World space" is the
plane of the measured object, reached through a 3x3 homography supplied by an
external alignment step. Without a homography the identity is used and
lengths are reported in pixels.

Functions:
    validate_homography: Check and normalise an image-to-world homography
    transform_points: Perspective transform of an (N, 2) point array
    transform_line: Perspective transform of a single line
    measure_angles: World-space crossing angle of each intersection
    measure_segments: World-space length of each segment

Classes:
    MeasurementPipeline: Tracker, centerline deriver and intersection deriver chained per frame
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

# ============================================================================
# LOGGER
# ============================================================================
from loguru import logger

# ============================================================================
# INTERNAL IMPORTS
# ============================================================================
from .centerlines import find_centerlines
from .config import TubeTrackConfig
from .data_classes import FrameMeasurements, Intersection, MeasuredAngle, MeasuredSegment
from .geometry import Line, LineLike, Point
from .intersections import find_intersections
from .line_tracker import LineTracker, Timer

IDENTITY_3X3 = np.eye(3, dtype=np.float64)


# ============================================================================
# HOMOGRAPHY HELPERS
# ============================================================================

def validate_homography(matrix: Optional[np.ndarray]) -> np.ndarray:
    """
    Check an image-to-world homography.

    Args:
        matrix: 3x3 matrix (any array-like), or None for the identity

    Returns:
        A float64 (3, 3) copy of the matrix
    """
    if matrix is None:
        return IDENTITY_3X3.copy()
    homography = np.array(matrix, dtype=np.float64)
    if homography.shape != (3, 3):
        raise ValueError(f"Homography must be a 3x3 matrix, got shape {homography.shape}")
    if not np.all(np.isfinite(homography)):
        raise ValueError("Homography contains non-finite values")
    return homography


def transform_points(points: np.ndarray, homography: np.ndarray) -> np.ndarray:
    """
    Apply a perspective transform to a set of 2D points.

    Equivalent to ``cv2.perspectiveTransform`` for an (N, 2) array.

    Args:
        points: Points [N, 2]
        homography: Transform [3, 3]

    Returns:
        Transformed points [N, 2]
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if points.shape[0] == 0:
        return np.zeros((0, 2), dtype=np.float64)

    homogeneous = np.hstack((points, np.ones((points.shape[0], 1), dtype=np.float64)))
    projected = homogeneous @ np.asarray(homography, dtype=np.float64).T
    w = projected[:, 2:3]
    if np.any(w == 0):
        raise ValueError("Homography maps a point to infinity")
    return projected[:, :2] / w


def transform_line(line: Line, homography: np.ndarray) -> Line:
    """Apply a perspective transform to both endpoints of a line."""
    (x1, y1), (x2, y2) = transform_points(np.array([line.start, line.end]), homography)
    return Line.from_coords(x1, y1, x2, y2)


# ============================================================================
# MEASUREMENT
# ============================================================================

def measure_angles(
    intersections: Sequence[Intersection],
    homography: Optional[np.ndarray] = None,
) -> List[MeasuredAngle]:
    """
    Measure the world-space crossing angle of each intersection.

    All intersections are packed into one array of points (five per
    intersection), transformed in a single call and unpacked again.

    Args:
        intersections: Intersections in image space
        homography: Image-to-world transform, or None for the identity

    Returns:
        One MeasuredAngle per intersection, in input order
    """
    if not intersections:
        return []
    homography = validate_homography(homography)

    packed = np.array([p for i in intersections for p in i.to_points()], dtype=np.float64)
    transformed = transform_points(packed, homography).reshape(-1, 5, 2)

    results = []
    for intersection, points in zip(intersections, transformed):
        world = Intersection.from_points([Point(*p) for p in points.tolist()])
        results.append(MeasuredAngle(
            intersection=intersection,
            world_intersection=world,
            angle=Line.acute_angle_between(world.line_a, world.line_b),
        ))
    return results


def measure_segments(
    segments: Sequence[Line],
    homography: Optional[np.ndarray] = None,
) -> List[MeasuredSegment]:
    """
    Measure the world-space length of each segment.

    Args:
        segments: Segments in image space
        homography: Image-to-world transform, or None for the identity

    Returns:
        One MeasuredSegment per segment, in input order
    """
    if not segments:
        return []
    homography = validate_homography(homography)

    packed = np.array([p for s in segments for p in (s.start, s.end)], dtype=np.float64)
    transformed = transform_points(packed, homography).reshape(-1, 4)

    results = []
    for segment, row in zip(segments, transformed.tolist()):
        world = Line.from_coords(*row)
        results.append(MeasuredSegment(segment=segment, world_segment=world, length=world.length()))
    return results


# ============================================================================
# PIPELINE
# ============================================================================
class MeasurementPipeline:
    """
    Per-frame measurement pipeline.

    Owns one :class:`LineTracker` (the only state carried between frames) and
    chains it with the centerline and intersection derivers and the world-space
    measurement. Everything else is produced fresh for each frame.

    Example:
        >>> pipeline = MeasurementPipeline()
        >>> result = pipeline.process_frame(raw_lines, frame_size=(640, 480))
        >>> for m in result.lengths:
        ...     print(f"{m.length:.1f}{result.units}")
    """

    def __init__(
        self,
        config: Optional[Union[TubeTrackConfig, dict]] = None,
        homography: Optional[np.ndarray] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Configuration object or dictionary
            homography: Image-to-world transform; None measures in pixels
        """
        self.tracker = LineTracker(config)
        self.config = self.tracker.config
        self._homography: Optional[np.ndarray] = None
        self.set_homography(homography)
        self.timings = {}

    @property
    def is_aligned(self) -> bool:
        """True when an image-to-world homography is set."""
        return self._homography is not None

    @property
    def homography(self) -> np.ndarray:
        """The transform in use (identity when not aligned)."""
        return IDENTITY_3X3.copy() if self._homography is None else self._homography.copy()

    @property
    def units(self) -> str:
        return self.config.world_units if self.is_aligned else "px"

    def set_homography(self, matrix: Optional[np.ndarray]) -> None:
        """Set the image-to-world transform; None returns to pixel units."""
        self._homography = None if matrix is None else validate_homography(matrix)
        logger.debug(f"Homography {'set' if self.is_aligned else 'cleared'}")

    def configure(self, **params) -> "MeasurementPipeline":
        """Change parameters between frames (see :meth:`LineTracker.configure`)."""
        self.tracker.configure(**params)
        return self

    def reset(self) -> None:
        """Discard the tracker history, e.g. after a mode change."""
        self.tracker = LineTracker(self.config)
        self.timings.clear()

    def process_frame(
        self,
        lines: Iterable[LineLike],
        frame_size: Optional[Tuple[float, float]] = None,
    ) -> FrameMeasurements:
        """
        Run the whole pipeline on one frame's raw segments.

        Args:
            lines: Raw, undistorted line segments detected in the frame
            frame_size: Frame (width, height), used for border rejection

        Returns:
            FrameMeasurements for this frame
        """
        timer = Timer() if self.config.debug_timings else None

        if timer: timer.start("track")
        tracked = self.tracker.update(lines, frame_size)
        if timer: timer.stop("track", self.timings)

        if timer: timer.start("centerlines")
        centerlines = find_centerlines(
            tracked,
            self.config.width_threshold,
            self.config.centerline_angle_threshold,
            self.config.centerline_extension,
            self.config.pairing_strategy,
        )
        # Descending angle, so line_b of each intersection has the smaller angle
        centerlines.sort(key=Line.angle, reverse=True)
        if timer: timer.stop("centerlines", self.timings)

        if timer: timer.start("intersections")
        intersections, segments = find_intersections(centerlines)
        if timer: timer.stop("intersections", self.timings)

        if timer: timer.start("measure")
        angles = measure_angles(intersections, self._homography)
        lengths = measure_segments(segments, self._homography)
        if timer: timer.stop("measure", self.timings)

        result = FrameMeasurements(
            frame_index=self.tracker.frame_count,
            tracked_lines=tracked,
            centerlines=centerlines,
            intersections=intersections,
            segments=segments,
            angles=angles,
            lengths=lengths,
            units=self.units,
        )
        logger.debug(result.summary())

        if timer and result.frame_index % 10 == 0:
            formatted = {k: f"{v*1000:.2f} ms" for k, v in self.timings.items()}
            logger.info(f"[Frame {result.frame_index}] Pipeline timings: {formatted}")
            self.timings.clear()

        return result
