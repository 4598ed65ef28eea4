"""
TubeTrack - Live Tube Measurement from Line Detections

Turns the raw line segments detected in each frame of a video into stable
tube edges, tube centerlines, corner intersections and measurable segments,
and reports segment lengths and corner angles in real-world units.

Features:
- Fuzzy moving average of line detections over a sliding window of frames
- Numba-compiled clustering and pairing kernels
- Centerline pairing with greedy, Hungarian or adjacent strategies
- Exact parametric segment intersection
- Optional image-to-world homography for measurements in millimetres

Installation:
    pip install tubetrack

    # Development installation
    pip install tubetrack[dev]

Basic Usage:
    from tubetrack import MeasurementPipeline

    pipeline = MeasurementPipeline(homography=alignment_matrix)

    for raw_lines in detections_per_frame:   # e.g. squeezed cv2.HoughLinesP output
        result = pipeline.process_frame(raw_lines, frame_size=(640, 480))
        for m in result.lengths:
            print(f"{m.length:.2f}{result.units}")
        for a in result.angles:
            print(f"{a.degrees:.2f}deg")
"""

# Geometry primitives
from .geometry import Line, Point, as_line, lines_from_array, lines_to_array
from .data_classes import FrameMeasurements, Intersection, MeasuredAngle, MeasuredSegment
from .config import TubeTrackConfig, load_config
from .pairing import PAIRING_STRATEGIES

# Pipeline stages
from .line_tracker import LineTracker, fuzzy_average_lines, reject_border_lines
from .centerlines import find_centerlines
from .intersections import find_intersections
from .measurement import (
    MeasurementPipeline,
    measure_angles,
    measure_segments,
    transform_line,
    transform_points,
    validate_homography,
)

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    # Geometry
    'Line',
    'Point',
    'as_line',
    'lines_to_array',
    'lines_from_array',

    # Data classes
    'Intersection',
    'MeasuredSegment',
    'MeasuredAngle',
    'FrameMeasurements',

    # Configuration
    'TubeTrackConfig',
    'load_config',

    # Pipeline stages
    'LineTracker',
    'fuzzy_average_lines',
    'reject_border_lines',
    'find_centerlines',
    'find_intersections',
    'MeasurementPipeline',
    'measure_angles',
    'measure_segments',
    'transform_points',
    'transform_line',
    'validate_homography',

    '__version__',
    '__license__',
]


def get_package_info():
    """Get package information."""
    return {
        'version': __version__,
        'license': __license__,
        'pairing_strategies': list(PAIRING_STRATEGIES),
    }


def print_package_info():
    """Print package information."""
    info = get_package_info()

    print("=" * 50)
    print("TubeTrack Package Information")
    print("=" * 50)
    print(f"Version: {info['version']}")
    print(f"License: {info['license']}")
    print(f"Pairing strategies: {', '.join(info['pairing_strategies'])}")
    print("=" * 50)
