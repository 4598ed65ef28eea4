"""
TubeTrack Line Tracker

This module contains the temporal line tracker. It turns the noisy, frame-to-
frame varying set of raw line segments detected in a video into a stable set
of tracked lines using a 'fuzzy moving average': the raw lines of the last few
frames are pooled and lines that coincide (close and near-parallel) are merged
into one.

Classes:
    Timer: Simple high-resolution timer for performance profiling
    LineTracker: Sliding-window line tracker

Functions:
    reject_border_lines: Drop segments hugging an edge of the frame
    fuzzy_average_lines: Merge coincident segments into one line per cluster
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
import time
from collections import deque
from typing import Deque, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

# ============================================================================
# LOGGER
# ============================================================================
from loguru import logger

# ============================================================================
# INTERNAL IMPORTS
# ============================================================================
from .config import TubeTrackConfig
from .geometry import Line, LineLike, as_line, lines_from_array, lines_to_array
from .line_kernels import coincidence_mask, fuse_cluster, is_steep, pair_cost_matrix, rectify_lines


# ============================================================================
# PERFORMANCE TIMING UTILITIES
# ============================================================================
class Timer:
    """Simple high-resolution timer for performance profiling."""

    def __init__(self):
        self._start_times = {}

    def start(self, key: str) -> None:
        """Start timing for the given key."""
        self._start_times[key] = time.perf_counter()

    def stop(self, key: str, store: dict) -> None:
        """Stop timing for the given key and accumulate the duration."""
        if key in self._start_times:
            duration = time.perf_counter() - self._start_times[key]
            store[key] = store.get(key, 0.0) + duration


# ============================================================================
# FRAME-LEVEL OPERATIONS
# ============================================================================

def _validate_frame_size(frame_size) -> Tuple[float, float]:
    if len(frame_size) != 2:
        raise ValueError(f"frame_size must be (width, height), got {frame_size!r}")
    width, height = float(frame_size[0]), float(frame_size[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"frame_size must be positive, got {frame_size!r}")
    return width, height


def reject_border_lines(
    lines: Sequence[Line],
    border: float,
    frame_size: Optional[Tuple[float, float]] = None,
) -> List[Line]:
    """
    Discard segments that lie along an edge of the frame.

    A segment is discarded when both of its endpoints lie within ``border``
    pixels of the same edge. The left and top edges are always checked; the
    right and bottom edges only when the frame size is known.

    Args:
        lines: Raw segments for one frame
        border: Border width in pixels
        frame_size: Frame (width, height), if known

    Returns:
        The segments that are not border artifacts, in input order
    """
    if border <= 0:
        return list(lines)

    width = height = None
    if frame_size is not None:
        width, height = _validate_frame_size(frame_size)

    kept = []
    for line in lines:
        (x1, y1), (x2, y2) = line.start, line.end
        if x1 < border and x2 < border:
            continue
        if y1 < border and y2 < border:
            continue
        if width is not None and x1 > width - border and x2 > width - border:
            continue
        if height is not None and y1 > height - border and y2 > height - border:
            continue
        kept.append(line)
    return kept


def _fuse_coincident(remaining: np.ndarray, distance_threshold: float, angle_threshold: float) -> np.ndarray:
    """One greedy clustering pass over segments [N, 4]; returns fused segments [M, 4], M <= N."""
    averaged = []

    while remaining.shape[0] > 0:
        # Choose the comparison axis from the reference to avoid issues with vertical lines
        compare_ys = is_steep(remaining[0])
        remaining = rectify_lines(remaining, compare_ys)

        reference = remaining[0]
        others = remaining[1:]

        mask = coincidence_mask(reference, others, distance_threshold, angle_threshold)
        cluster = np.concatenate((others[mask], reference[np.newaxis, :]), axis=0)

        averaged.append(fuse_cluster(cluster, compare_ys))
        remaining = np.ascontiguousarray(others[~mask])

    if not averaged:
        return np.empty((0, 4), dtype=np.float64)
    return np.array(averaged)


def fuzzy_average_lines(
    lines: Sequence[Line],
    distance_threshold: float,
    angle_threshold: float,
) -> List[Line]:
    """
    Perform a 'fuzzy average' of a list of lines.

    The first remaining line is taken as a reference and every remaining line
    (the reference included) is rectified along the reference's dominant axis.
    Lines whose midpoint is within ``distance_threshold`` of the reference and
    whose acute angle to it is below ``angle_threshold`` form one cluster with
    the reference. The cluster is fused into a single line spanning its full
    extent, and the process repeats on the lines left over until none remain.

    A fused line sits between the lines of its cluster, so it can end up
    coincident with a line fused from a later cluster. The fused lines are
    therefore clustered again, until a pass merges nothing.

    Args:
        lines: Lines to be averaged (not modified)
        distance_threshold: Maximum perpendicular distance from the reference to a
            line's midpoint for the two to be coincident
        angle_threshold: Maximum acute angle, in radians, for two lines to be coincident

    Returns:
        One line per cluster, pairwise non-coincident. Every output line is
        rectified (x-rectified, or y-rectified when steep), so a steep input
        such as (0, 10)->(0, 0) comes back reversed; averaging the output
        again returns it unchanged, but averaging unrectified input does not.
    """
    averaged = _fuse_coincident(lines_to_array(lines), distance_threshold, angle_threshold)

    while averaged.shape[0] > 1:
        merged = _fuse_coincident(averaged, distance_threshold, angle_threshold)
        if merged.shape[0] == averaged.shape[0]:
            break
        averaged = merged

    if averaged.shape[0] == 0:
        return []
    return lines_from_array(averaged)


# ============================================================================
# MAIN TRACKER CLASS
# ============================================================================
class LineTracker:
    """
    Sliding-window line tracker.

    Each call to :meth:`update` processes the raw segments detected in one
    frame: border artifacts are discarded, the frame is stored in a bounded
    history of the most recent ``window_size`` frames, and the pooled history
    is fuzzy-averaged into one line per physical edge. Lines that appear in
    only one frame are diluted by the others, and duplicate detections of the
    same edge collapse into one line that keeps the edge's full extent.

    The tracker is not thread-safe; calls must be serialised by the caller,
    one frame at a time.
    """

    def __init__(
        self,
        config: Optional[Union[TubeTrackConfig, dict]] = None,
        **kwargs
    ):
        """Initialize the line tracker with configuration.

        Args:
            config: Configuration object or dictionary
            **kwargs: Individual parameters overriding the configuration
        """
        if config is None:
            self.config = TubeTrackConfig()
        elif isinstance(config, dict):
            self.config = TubeTrackConfig.from_dict(config)
        else:
            self.config = config

        for key, value in kwargs.items():
            if not hasattr(self.config, key):
                raise ValueError(f"Unknown LineTracker parameter: {key}")
            setattr(self.config, key, value)
        self.config.validate()

        self._setup_tracker_state()
        self._precompile_numba()

    def _setup_tracker_state(self):
        """Initialize tracker state variables."""
        self._history: Deque[Tuple[Line, ...]] = deque(maxlen=self.config.window_size)
        self._frame_size: Optional[Tuple[float, float]] = None
        self._frame_count = 0
        self.timings = {}

    def _precompile_numba(self):
        """Pre-compile Numba kernels so the first frame is not slow."""
        if not getattr(self, '_numba_compiled', False):
            try:
                dummy = np.array([[0.0, 0.0, 1.0, 1.0], [0.0, 1.0, 1.0, 2.0]], dtype=np.float64)
                rectified = rectify_lines(dummy, False)
                coincidence_mask(rectified[0], rectified[1:], 1.0, 0.1)
                fuse_cluster(rectified, False)
                pair_cost_matrix(rectified, 1.0, 0.1)
                self._numba_compiled = True
                logger.debug("Numba kernels compiled successfully")
            except Exception as e:
                logger.warning(f"Numba compilation warning: {e}")

    def configure(self, **params) -> "LineTracker":
        """
        Change parameters between frames.

        Parameters are validated before the change takes effect; an invalid
        value leaves the configuration untouched. Shrinking ``window_size``
        keeps only the most recent frames.

        Args:
            **params: TubeTrackConfig fields to change

        Returns:
            The tracker, so calls can be chained
        """
        for key in params:
            if not hasattr(self.config, key):
                raise ValueError(f"Unknown LineTracker parameter: {key}")
        candidate = TubeTrackConfig.from_dict({**self.config.to_dict(), **params})
        candidate.validate()

        for key, value in params.items():
            setattr(self.config, key, value)

        self._sync_window()
        return self

    def _sync_window(self):
        """Resize the history if window_size changed, keeping the newest frames."""
        if self._history.maxlen != self.config.window_size:
            self._history = deque(self._history, maxlen=self.config.window_size)

    def update(
        self,
        lines: Iterable[LineLike],
        frame_size: Optional[Tuple[float, float]] = None,
    ) -> List[Line]:
        """
        Main update function for the tracker.

        Args:
            lines: Raw segments detected in the current frame. Each may be a Line,
                an (x1, y1, x2, y2) sequence or a pair of points. Empty is valid.
            frame_size: Frame (width, height); remembered for later frames

        Returns:
            The tracked lines for this frame, pairwise non-coincident
        """
        # Parameters may have been changed directly on the config between frames
        self.config.validate()
        self._sync_window()

        self._frame_count += 1
        timer = Timer() if self.config.debug_timings else None

        if frame_size is not None:
            self._frame_size = _validate_frame_size(frame_size)

        # Border rejection
        if timer: timer.start("border")
        raw = [as_line(line) for line in lines]
        kept = reject_border_lines(raw, self.config.border, self._frame_size)
        if timer: timer.stop("border", self.timings)

        # History update
        kept.sort(key=Line.angle)
        self._history.append(tuple(kept))

        # Flatten, most recent frame first
        pooled = [line for frame in reversed(self._history) for line in reversed(frame)]

        # Fuzzy clustering
        if timer: timer.start("cluster")
        tracked = fuzzy_average_lines(
            pooled, self.config.distance_threshold, self.config.angle_threshold
        )
        if timer: timer.stop("cluster", self.timings)

        logger.debug(
            f"[Frame {self._frame_count}] {len(raw)} raw lines, {len(raw) - len(kept)} on border, "
            f"{len(pooled)} pooled -> {len(tracked)} tracked"
        )

        if self.config.debug_timings:
            self._log_timings()

        return tracked

    def _log_timings(self):
        """Log timing information for debugging."""
        if self._frame_count % 10 == 0:
            formatted = {k: f"{v*1000:.2f} ms" for k, v in self.timings.items()}
            logger.info(f"[Frame {self._frame_count}] Timings: {formatted}")
            self.timings.clear()

    def reset(self):
        """Reset the tracker to initial state."""
        self._history.clear()
        self._frame_size = None
        self._frame_count = 0
        self.timings.clear()

    @property
    def frame_count(self) -> int:
        """Get current frame count."""
        return self._frame_count

    @property
    def history(self) -> Tuple[Tuple[Line, ...], ...]:
        """Buffered frames, oldest first."""
        return tuple(self._history)

    def get_state(self) -> dict:
        """Get current tracker state for debugging."""
        return {
            "frame_count": self._frame_count,
            "n_frames_buffered": len(self._history),
            "n_lines_buffered": sum(len(frame) for frame in self._history),
            "window_size": self.config.window_size,
            "frame_size": self._frame_size,
        }
