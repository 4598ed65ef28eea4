"""
Basic usage examples for the TubeTrack package.

This script feeds synthetic line detections of a bent tube through the
measurement pipeline, the way a live camera feed would after Hough line
detection.
"""
import math
import sys
from pathlib import Path

import numpy as np

# Add the src directory to path for importing tubetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tubetrack import (
    Line,
    LineTracker,
    MeasurementPipeline,
    TubeTrackConfig,
    print_package_info,
)

FRAME_SIZE = (640, 480)

# Edges of an L-shaped tube, 40px wide: a horizontal arm along y=160 and a
# vertical arm along x=420, meeting at a right-angle bend
L_TUBE_EDGES = [
    (120, 140, 440, 140),
    (120, 180, 400, 180),
    (440, 140, 440, 420),
    (400, 180, 400, 420),
]

# A second bend makes the horizontal arm measurable: a short vertical stub at x=140
STUB_EDGES = [
    (120, 140, 120, 60),
    (160, 140, 160, 60),
]


def create_synthetic_lines(frame_num: int, noise: float = 1.5, dropout: float = 0.15,
                           rng: np.random.Generator = None) -> np.ndarray:
    """Create one frame of noisy line detections, shaped like squeezed HoughLinesP output."""
    rng = rng or np.random.default_rng(frame_num)
    lines = []
    for edge in L_TUBE_EDGES + STUB_EDGES:
        if rng.random() < dropout:
            continue
        lines.append(np.array(edge, dtype=np.float64) + rng.uniform(-noise, noise, 4))

    # Clutter: an occasional spurious short segment, and the frame border
    if frame_num % 4 == 0:
        x, y = rng.uniform(50, 590), rng.uniform(50, 430)
        angle = rng.uniform(0, math.pi)
        lines.append(np.array([x, y, x + 30 * math.cos(angle), y + 30 * math.sin(angle)]))
    lines.append(np.array([2.0, 10.0, 3.0, 470.0]))

    return np.array(lines).astype(np.int32)


def example_line_tracking():
    """Demonstrate the line tracker on its own."""
    print("=== Line Tracking Example ===")

    tracker = LineTracker(TubeTrackConfig(window_size=5))
    rng = np.random.default_rng(0)

    for frame_num in range(10):
        raw = create_synthetic_lines(frame_num, rng=rng)
        tracked = tracker.update(raw, FRAME_SIZE)
        print(f"Frame {frame_num:2d}: {len(raw)} raw lines -> {len(tracked)} tracked lines")

    print(f"Tracker state: {tracker.get_state()}")
    for line in tracked:
        (x1, y1), (x2, y2) = line.start, line.end
        print(f"  ({x1:6.1f}, {y1:6.1f}) -> ({x2:6.1f}, {y2:6.1f})  "
              f"{math.degrees(line.angle()):6.1f}deg")
    print()


def example_pixel_measurement():
    """Demonstrate the full pipeline without a camera alignment."""
    print("=== Pixel Measurement Example ===")

    pipeline = MeasurementPipeline()
    rng = np.random.default_rng(1)

    for frame_num in range(15):
        result = pipeline.process_frame(create_synthetic_lines(frame_num, rng=rng), FRAME_SIZE)
        print(result.summary())

    for measured in result.lengths:
        print(f"  segment length: {measured.length:.1f}{result.units}")
    for measured in result.angles:
        print(f"  bend angle: {measured.degrees:.1f}deg")
    print()


def example_world_measurement():
    """Demonstrate measurement in millimetres with an alignment homography."""
    print("=== World Measurement Example ===")

    # 4 pixels per millimetre, origin at the top-left corner of the frame
    pixels_per_mm = 4.0
    homography = np.diag([1 / pixels_per_mm, 1 / pixels_per_mm, 1.0])

    pipeline = MeasurementPipeline(TubeTrackConfig(world_units="mm"), homography=homography)
    rng = np.random.default_rng(2)

    for frame_num in range(10):
        result = pipeline.process_frame(create_synthetic_lines(frame_num, rng=rng), FRAME_SIZE)

    print(f"Aligned: {pipeline.is_aligned}")
    for measured in result.lengths:
        print(f"  segment length: {measured.length:.2f}{result.units} "
              f"({measured.segment.length():.1f}px in the image)")
    for measured in result.angles:
        print(f"  bend angle: {measured.degrees:.2f}deg")
    print()


def example_reconfiguration():
    """Demonstrate changing parameters between frames."""
    print("=== Reconfiguration Example ===")

    pipeline = MeasurementPipeline()
    rng = np.random.default_rng(3)

    for frame_num in range(20):
        if frame_num == 10:
            # Narrower tubes only: the 40px tube is no longer recognised
            pipeline.configure(width_threshold=30.0, pairing_strategy="hungarian")
            print("  -> width_threshold=30.0, pairing_strategy='hungarian'")
        result = pipeline.process_frame(create_synthetic_lines(frame_num, rng=rng), FRAME_SIZE)
        print(f"Frame {frame_num:2d}: {len(result.centerlines)} centerlines, "
              f"{len(result.lengths)} lengths")

    pipeline.reset()
    print(f"After reset: frame_count={pipeline.tracker.frame_count}")
    print()


def example_geometry():
    """Demonstrate the geometry primitives used throughout the pipeline."""
    print("=== Geometry Example ===")

    a = Line.from_coords(0, 0, 100, 0)
    b = Line.from_coords(100, 40, 0, 40)
    centre = Line.equidistant(a, b)
    print(f"Centerline of {a.as_tuple()} and {b.as_tuple()}: {centre.as_tuple()}")
    print(f"Extended by 20%: {centre.extended(0.2).as_tuple()}")

    v = Line.from_coords(50, -10, 50, 60)
    print(f"Intersection with {v.as_tuple()}: {Line.intersection(centre, v)}")
    print(f"Acute angle: {math.degrees(Line.acute_angle_between(centre, v)):.1f}deg")
    print()


if __name__ == "__main__":
    print_package_info()
    example_geometry()
    example_line_tracking()
    example_pixel_measurement()
    example_world_measurement()
    example_reconfiguration()
