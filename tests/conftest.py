"""
Pytest configuration and fixtures for TubeTrack tests.
"""
import pytest
import numpy as np
from typing import List
import sys
from pathlib import Path

# Add the package to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tubetrack import Line, LineTracker, MeasurementPipeline, TubeTrackConfig


@pytest.fixture
def default_config():
    """Default TubeTrack configuration for testing."""
    return TubeTrackConfig()


@pytest.fixture
def single_frame_config():
    """Configuration without temporal smoothing."""
    return TubeTrackConfig(window_size=1)


@pytest.fixture
def no_border_config():
    """Configuration with border rejection disabled."""
    return TubeTrackConfig(border=0.0)


@pytest.fixture
def wide_tube_config():
    """Configuration accepting tubes up to 150px wide."""
    return TubeTrackConfig(width_threshold=150.0)


@pytest.fixture
def tracker(default_config):
    """Line tracker with default configuration."""
    return LineTracker(default_config)


@pytest.fixture
def pipeline(default_config):
    """Measurement pipeline without a homography."""
    return MeasurementPipeline(default_config)


@pytest.fixture
def frame_size():
    return (640, 480)


@pytest.fixture
def u_tube_edges() -> List[Line]:
    """Edges of a U-shaped tube, 40px wide, seen from above.

    A horizontal arm with centerline y=120 joins two vertical arms with
    centerlines x=120 and x=380. The centerlines are therefore
    (120,120)-(380,120), (120,120)-(120,400) and (380,120)-(380,400).
    """
    return [
        # Horizontal arm: outer and inner edge
        Line.from_coords(100, 100, 400, 100),
        Line.from_coords(140, 140, 360, 140),
        # Left arm
        Line.from_coords(100, 100, 100, 400),
        Line.from_coords(140, 140, 140, 400),
        # Right arm
        Line.from_coords(360, 140, 360, 400),
        Line.from_coords(400, 100, 400, 400),
    ]


@pytest.fixture
def noisy_frames(u_tube_edges):
    """Generator of noisy frames of the U-shaped tube with occasional dropouts."""

    def _generate(num_frames: int = 10, noise: float = 1.0, seed: int = 42):
        rng = np.random.default_rng(seed)
        frames = []
        for _ in range(num_frames):
            frame = []
            for line in u_tube_edges:
                # 10% chance a detection is missed
                if rng.random() < 0.1:
                    continue
                jitter = rng.uniform(-noise, noise, size=4)
                frame.append(Line.from_coords(*(np.array(line.as_tuple()) + jitter)))
            frames.append(frame)
        return frames

    return _generate


def assert_line_close(actual: Line, expected: Line, atol: float = 1e-6):
    """Assert two lines have the same endpoints in the same order."""
    np.testing.assert_allclose(actual.as_tuple(), expected.as_tuple(), atol=atol)


def assert_same_segment(actual: Line, expected: Line, atol: float = 1e-6):
    """Assert two lines cover the same segment, in either direction."""
    a = np.array(actual.as_tuple())
    e = np.array(expected.as_tuple())
    if not (np.allclose(a, e, atol=atol) or np.allclose(a, e[[2, 3, 0, 1]], atol=atol)):
        raise AssertionError(f"{actual} is not the segment {expected}")


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "stress: Stress and edge case tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
