"""
TubeTrack Centerline Deriver

Pairs tracked lines that look like the two edges of one tube (near-parallel
and closely spaced) and returns the centerline of each pair.

Functions:
    find_centerlines: Derive tube centerlines from one frame's tracked lines
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
from typing import List, Sequence

from loguru import logger

# ============================================================================
# INTERNAL IMPORTS
# ============================================================================
from .geometry import Line, lines_to_array
from .line_kernels import pair_cost_matrix
from .pairing import pair_lines


def find_centerlines(
    lines: Sequence[Line],
    width_threshold: float,
    angle_threshold: float,
    extension: float = 0.2,
    strategy: str = "greedy",
) -> List[Line]:
    """
    Detect pairs of near-parallel lines less than ``width_threshold`` apart and
    return the line equidistant from both lines of each pair.

    The lines are first sorted by angle (stable, so ties keep their input
    order). Two lines are a candidate pair when their acute angle is below
    ``angle_threshold`` and the perpendicular distance from one to the other's
    midpoint is below ``width_threshold``. Each line is used in at most one
    pair; ``strategy`` decides which candidates win (see
    :mod:`tubetrack.pairing`).

    Each centerline is lengthened by ``extension`` (split between both ends)
    so that later intersection tests, which ignore crossings beyond segment
    ends, can reach the true corners.

    Args:
        lines: Tracked lines for one frame (not modified)
        width_threshold: Maximum distance between the two edges of a tube, in pixels
        angle_threshold: Maximum acute angle between the two edges, in radians
        extension: Fraction by which to extend each centerline
        strategy: Pairing strategy, "greedy", "hungarian" or "adjacent"

    Returns:
        One centerline per accepted pair, ordered by the pair's lower index in
        the angle-sorted sequence
    """
    ordered = sorted(lines, key=Line.angle)
    if len(ordered) < 2:
        return []

    costs = pair_cost_matrix(lines_to_array(ordered), width_threshold, angle_threshold)
    pairs = sorted(pair_lines(costs, strategy), key=lambda pair: min(pair))

    centerlines = [
        Line.equidistant(ordered[i], ordered[j]).extended(extension)
        for i, j in pairs
    ]
    logger.debug(f"{len(ordered)} lines -> {len(centerlines)} centerlines ({strategy} pairing)")
    return centerlines
