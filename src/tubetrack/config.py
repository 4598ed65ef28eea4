"""
TubeTrack Configuration System

This module provides the configuration classes and utilities for TubeTrack.
The main TubeTrackConfig class contains all tunable parameters of the line
tracker, the centerline deriver and the measurement pipeline, with sensible
defaults and validation.

Classes:
    BaseConfig: Base configuration class with YAML loading capabilities
    TubeTrackConfig: Main configuration class for the measurement core
"""
# ============================================================================
# STANDARD IMPORTS
# ============================================================================
import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Type, TypeVar

import yaml
from loguru import logger

from .pairing import PAIRING_STRATEGIES

T = TypeVar("T", bound="BaseConfig")


@dataclass
class BaseConfig:
    """Base configuration class with YAML loading capabilities."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result = {}
        for key, value in self.__dict__.items():
            if not key.startswith("_"):
                result[key] = value
        return result

    @classmethod
    def from_dict(cls: Type[T], config_dict: Dict[str, Any]) -> T:
        """Create configuration from dictionary, ignoring unknown keys."""
        valid_fields = {
            f.name for f in cls.__dataclass_fields__.values() if not f.name.startswith("_")
        }
        for key in config_dict:
            if key not in valid_fields:
                logger.warning(f"Ignoring unknown config key: {key}")
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_fields}
        return cls(**filtered_dict)

    @classmethod
    def from_yaml(cls: Type[T], yaml_path: str) -> T:
        """Load configuration from YAML file."""
        yaml_file = Path(yaml_path)
        if not yaml_file.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_file, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}

        if not isinstance(config_dict, dict):
            raise ValueError(f"Config file {yaml_path} does not contain a mapping")

        return cls.from_dict(config_dict)

    def save_yaml(self, yaml_path: str) -> None:
        """Save configuration to YAML file."""
        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


@dataclass
class TubeTrackConfig(BaseConfig):
    """
    Configuration for the TubeTrack measurement core.

    TubeTrack turns noisy per-frame line detections into stable tube edges,
    pairs the edges into centerlines, intersects the centerlines and measures
    the resulting segment lengths and corner angles.

    Every parameter may be changed between frames; call ``validate()`` (or use
    ``LineTracker.configure``) after changing them.

    Quick Start Guide:
    ------------------
    For flickering lines: increase window_size
    For duplicated edges: increase distance_threshold or angle_threshold
    For tubes not being found: increase width_threshold
    For corners not being found: increase centerline_extension
    """

    # ============================================================================
    # LINE TRACKER PARAMETERS
    # ============================================================================

    window_size: int = 5
    """Number of frames in the sliding window used for the fuzzy moving average.

    - 1 = No temporal smoothing (each frame stands alone)
    - 3-5 = Balanced (default)
    - 10+ = Very stable lines, but slow to react when the object moves
    """

    angle_threshold: float = math.radians(10)
    """Maximum acute angle in radians for two detections to be merged into one tracked line."""

    distance_threshold: float = 10.0
    """Maximum perpendicular distance in pixels for two detections to be merged.

    Measured from the reference line to the midpoint of the other line.
    """

    border: float = 20.0
    """Segments with both endpoints within this many pixels of the same frame edge are discarded."""

    # ============================================================================
    # CENTERLINE PARAMETERS
    # ============================================================================

    centerline_angle_threshold: float = math.radians(5)
    """Maximum acute angle in radians between the two edges of one tube."""

    width_threshold: float = 50.0
    """Maximum distance in pixels between the two edges of one tube.

    Keeps unrelated parallel lines (e.g. the edges of a test card) from being
    paired.
    """

    centerline_extension: float = 0.2
    """Fraction by which each centerline is lengthened, split between both ends.

    Intersections are only found within segment extents, so centerlines need
    some reach past the detected edges to meet at corners.
    """

    pairing_strategy: Literal["greedy", "hungarian", "adjacent"] = "greedy"
    """How tracked lines are paired into tube edges.

    - "greedy": cheapest valid pair first (recommended)
    - "hungarian": optimal assignment proposals, resolved cheapest first
    - "adjacent": each line with its angular neighbour; can mis-pair three or
      more parallel lines
    """

    # ============================================================================
    # MEASUREMENT SETTINGS
    # ============================================================================

    world_units: str = "mm"
    """Unit label for measurements when an image-to-world homography is set."""

    # ============================================================================
    # DEBUG SETTINGS
    # ============================================================================

    debug_timings: bool = False
    """Log per-stage timing information every 10 frames."""

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises ValueError if any parameter would make the clustering or
        pairing meaningless.
        """
        if isinstance(self.window_size, bool) or not isinstance(self.window_size, numbers.Integral):
            raise ValueError("window_size must be an integer")

        if self.window_size < 1:
            raise ValueError("window_size must be at least 1")

        if not 0 < self.angle_threshold <= math.pi / 2:
            raise ValueError("angle_threshold must be in (0, pi/2] radians")

        if self.distance_threshold <= 0:
            raise ValueError("distance_threshold must be positive")

        if self.border < 0:
            raise ValueError("border must be non-negative")

        if not 0 < self.centerline_angle_threshold <= math.pi / 2:
            raise ValueError("centerline_angle_threshold must be in (0, pi/2] radians")

        if self.width_threshold <= 0:
            raise ValueError("width_threshold must be positive")

        if self.centerline_extension <= -1:
            raise ValueError("centerline_extension must be greater than -1")

        if self.pairing_strategy not in PAIRING_STRATEGIES:
            raise ValueError(f"Invalid pairing_strategy, expected one of {PAIRING_STRATEGIES}")


def load_config(config_path: Optional[str] = None) -> TubeTrackConfig:
    """
    Load TubeTrack configuration.

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults.

    Returns:
        Validated TubeTrackConfig instance
    """
    if config_path is None:
        config = TubeTrackConfig()
    else:
        config = TubeTrackConfig.from_yaml(config_path)

    config.validate()
    return config
