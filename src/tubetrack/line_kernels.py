"""
TubeTrack Line Kernels Module

This module contains the Numba-compiled batch kernels used by the line tracker
and the centerline deriver. Every kernel works on contiguous float64 arrays of
shape (N, 4) holding one segment per row as ``x1, y1, x2, y2``, and mirrors the
scalar operations of :class:`tubetrack.geometry.Line` exactly.

Kernels are compiled without fastmath: the coincidence and pairing tests are
hard threshold comparisons and must give the same answer as the scalar code.

Functions:
    segment_angles: atan2 angle of every segment
    acute_angle: Acute angle between two directed angles
    perpendicular_distance: Distance from a segment's infinite extension to a point
    rectify_lines: Batch x- or y-rectification
    coincidence_mask: Which segments are coincident with a reference segment
    fuse_cluster: Merge a cluster of coincident segments into one segment
    pair_cost_matrix: Gated cost matrix for pairing tube edges into centerlines
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
import math

import numba as nb
import numpy as np


# ============================================================================
# SCALAR HELPERS
# ============================================================================

@nb.njit(cache=True)
def acute_angle(angle_a: float, angle_b: float) -> float:
    """
    Acute angle between two lines given their atan2 angles.

    Args:
        angle_a: Angle of the first line in (-pi, pi]
        angle_b: Angle of the second line in (-pi, pi]

    Returns:
        Angle in [0, pi/2]
    """
    diff = abs(angle_a - angle_b)
    diff = min(diff, 2.0 * math.pi - diff)
    return min(diff, math.pi - diff)


@nb.njit(cache=True)
def perpendicular_distance(line: np.ndarray, px: float, py: float) -> float:
    """
    Perpendicular distance from the infinite extension of ``line`` to a point.

    Computed as |start->point| * sin(acute angle between the line and the
    start->point chord), the same formula as ``Line.distance_to``.

    Args:
        line: Segment [x1, y1, x2, y2]
        px: Point x coordinate
        py: Point y coordinate

    Returns:
        Non-negative distance
    """
    hx = px - line[0]
    hy = py - line[1]
    hypot_len = math.sqrt(hx * hx + hy * hy)
    line_angle = math.atan2(line[3] - line[1], line[2] - line[0])
    hypot_angle = math.atan2(hy, hx)
    return hypot_len * math.sin(acute_angle(line_angle, hypot_angle))


@nb.njit(cache=True)
def fraction_along(line: np.ndarray, px: float, py: float) -> float:
    """Signed fraction along ``line`` of the foot of the perpendicular from a point."""
    dx = line[2] - line[0]
    dy = line[3] - line[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return 0.0
    return ((px - line[0]) * dx + (py - line[1]) * dy) / length_sq


@nb.njit(cache=True)
def is_steep(line: np.ndarray) -> bool:
    """True when |gradient| > 1. Vertical segments are steep; zero-length ones are not."""
    dx = abs(line[2] - line[0])
    dy = abs(line[3] - line[1])
    if dx == 0.0:
        return dy > 0.0
    return dy / dx > 1.0


# ============================================================================
# BATCH KERNELS
# ============================================================================

@nb.njit(cache=True)
def segment_angles(lines: np.ndarray) -> np.ndarray:
    """
    Angle of every segment.

    Args:
        lines: Segments [N, 4]

    Returns:
        Angles [N] in (-pi, pi]
    """
    n = lines.shape[0]
    angles = np.empty(n, dtype=np.float64)
    for i in range(n):
        angles[i] = math.atan2(lines[i, 3] - lines[i, 1], lines[i, 2] - lines[i, 0])
    return angles


@nb.njit(cache=True)
def rectify_lines(lines: np.ndarray, compare_ys: bool) -> np.ndarray:
    """
    Swap endpoints where needed so each start has the smaller x (or y) coordinate.

    Args:
        lines: Segments [N, 4]
        compare_ys: Rectify on y instead of x

    Returns:
        New array of rectified segments [N, 4]
    """
    n = lines.shape[0]
    out = np.empty((n, 4), dtype=np.float64)
    axis = 1 if compare_ys else 0
    for i in range(n):
        if lines[i, axis] > lines[i, axis + 2]:
            out[i, 0] = lines[i, 2]
            out[i, 1] = lines[i, 3]
            out[i, 2] = lines[i, 0]
            out[i, 3] = lines[i, 1]
        else:
            out[i, 0] = lines[i, 0]
            out[i, 1] = lines[i, 1]
            out[i, 2] = lines[i, 2]
            out[i, 3] = lines[i, 3]
    return out


@nb.njit(cache=True)
def coincidence_mask(
    reference: np.ndarray,
    lines: np.ndarray,
    distance_threshold: float,
    angle_threshold: float,
) -> np.ndarray:
    """
    Find segments coincident with a reference segment.

    A segment is coincident when the perpendicular distance from the reference
    to its midpoint is below ``distance_threshold`` and its acute angle to the
    reference is below ``angle_threshold``.

    Args:
        reference: Reference segment [4]
        lines: Candidate segments [N, 4]
        distance_threshold: Maximum perpendicular distance in pixels
        angle_threshold: Maximum acute angle in radians

    Returns:
        Boolean mask [N]
    """
    n = lines.shape[0]
    mask = np.zeros(n, dtype=np.bool_)
    ref_angle = math.atan2(reference[3] - reference[1], reference[2] - reference[0])

    for i in range(n):
        mid_x = (lines[i, 0] + lines[i, 2]) / 2.0
        mid_y = (lines[i, 1] + lines[i, 3]) / 2.0
        if perpendicular_distance(reference, mid_x, mid_y) >= distance_threshold:
            continue
        angle = math.atan2(lines[i, 3] - lines[i, 1], lines[i, 2] - lines[i, 0])
        if acute_angle(ref_angle, angle) < angle_threshold:
            mask[i] = True

    return mask


@nb.njit(cache=True)
def fuse_cluster(cluster: np.ndarray, compare_ys: bool) -> np.ndarray:
    """
    Merge a cluster of rectified, coincident segments into one segment.

    Start points and end points are averaged independently to get a centroid
    line; its endpoints are then replaced by the projections onto it of the
    most extreme start and end points along the comparison axis, so the merged
    line spans the full extent of the cluster.

    Args:
        cluster: Rectified segments [K, 4], K >= 1
        compare_ys: Compare extremes on y instead of x

    Returns:
        Fused segment [4]
    """
    k = cluster.shape[0]
    mean = np.zeros(4, dtype=np.float64)
    for i in range(k):
        for c in range(4):
            mean[c] += cluster[i, c]
    for c in range(4):
        mean[c] /= k

    axis = 1 if compare_ys else 0
    first = 0
    last = 0
    for i in range(1, k):
        if cluster[i, axis] < cluster[first, axis]:
            first = i
        if cluster[i, axis + 2] > cluster[last, axis + 2]:
            last = i

    dx = mean[2] - mean[0]
    dy = mean[3] - mean[1]
    t_start = fraction_along(mean, cluster[first, 0], cluster[first, 1])
    t_end = fraction_along(mean, cluster[last, 2], cluster[last, 3])

    fused = np.empty(4, dtype=np.float64)
    fused[0] = mean[0] + dx * t_start
    fused[1] = mean[1] + dy * t_start
    fused[2] = mean[0] + dx * t_end
    fused[3] = mean[1] + dy * t_end
    return fused


@nb.njit(cache=True)
def pair_cost_matrix(
    lines: np.ndarray,
    width_threshold: float,
    angle_threshold: float,
) -> np.ndarray:
    """
    Gated cost matrix for pairing tube edges.

    ``cost[i, j]`` is the perpendicular distance from line i to the midpoint of
    line j when the two lines are within ``angle_threshold`` of parallel and
    that distance is below ``width_threshold``; otherwise it is infinite. The
    diagonal is always infinite.

    Args:
        lines: Tracked segments [N, 4]
        width_threshold: Maximum edge separation in pixels
        angle_threshold: Maximum acute angle in radians

    Returns:
        Cost matrix [N, N]
    """
    n = lines.shape[0]
    costs = np.full((n, n), np.inf, dtype=np.float64)
    angles = segment_angles(lines)

    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            if acute_angle(angles[i], angles[j]) >= angle_threshold:
                continue
            mid_x = (lines[j, 0] + lines[j, 2]) / 2.0
            mid_y = (lines[j, 1] + lines[j, 3]) / 2.0
            distance = perpendicular_distance(lines[i], mid_x, mid_y)
            if distance < width_threshold:
                costs[i, j] = distance

    return costs
