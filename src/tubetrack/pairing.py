"""
TubeTrack Pairing Module

This module contains the strategies used to pair tracked lines into the two
edges of one tube. Unlike a detection-to-track assignment, pairing happens
within a single set of lines: once a line is used in a pair it is unavailable
as either member of any other pair.

All strategies take a gated cost matrix (see
:func:`tubetrack.line_kernels.pair_cost_matrix`) in which invalid pairs have an
infinite cost.

Functions:
    greedy_pairing: Repeatedly take the globally cheapest remaining pair
    hungarian_pairing: Hungarian proposals resolved in ascending cost order
    adjacent_pairing: Circular-neighbour pairing over an angle-sorted sequence
    pair_lines: Dispatch to a strategy by name
"""

# ============================================================================
# STANDARD IMPORTS
# ============================================================================
from typing import List, Tuple

import numpy as np
from scipy.optimize import linear_sum_assignment

PAIRING_STRATEGIES = ("greedy", "hungarian", "adjacent")


# ============================================================================
# GREEDY PAIRING
# ============================================================================

def greedy_pairing(cost_matrix: np.ndarray) -> List[Tuple[int, int]]:
    """
    Greedy pairing by global minimum cost.

    Each step finds the cheapest finite entry, records it as a pair and removes
    both members (their rows and columns) from further consideration.

    Args:
        cost_matrix: Gated cost matrix [N, N]

    Returns:
        List of (i, j) pairs, in the order they were chosen
    """
    n = cost_matrix.shape[0]
    if n < 2:
        return []

    working_matrix = cost_matrix.astype(np.float64, copy=True)
    pairs = []

    for _ in range(n // 2):
        min_flat_idx = np.argmin(working_matrix)
        min_cost = working_matrix.flat[min_flat_idx]

        if min_cost == np.inf:
            break

        i = int(min_flat_idx // n)
        j = int(min_flat_idx % n)
        pairs.append((i, j))

        # Both lines are now used, as either member of a pair
        working_matrix[[i, j], :] = np.inf
        working_matrix[:, [i, j]] = np.inf

    return pairs


# ============================================================================
# HUNGARIAN PAIRING
# ============================================================================

def hungarian_pairing(cost_matrix: np.ndarray) -> List[Tuple[int, int]]:
    """
    Pairing seeded by scipy's Hungarian algorithm.

    The assignment gives each line a proposed partner. Because the proposals
    need not be mutual, they are accepted in ascending cost and any proposal
    touching an already-used line is skipped.

    Args:
        cost_matrix: Gated cost matrix [N, N]

    Returns:
        List of (i, j) pairs, cheapest first
    """
    n = cost_matrix.shape[0]
    if n < 2 or np.all(np.isinf(cost_matrix)):
        return []

    finite_costs = cost_matrix[np.isfinite(cost_matrix)]
    working_matrix = cost_matrix.astype(np.float64, copy=True)
    # Cap infinite costs so the assignment is always feasible
    working_matrix[np.isinf(working_matrix)] = (np.max(finite_costs) + 1.0) * 2

    try:
        row_indices, col_indices = linear_sum_assignment(working_matrix)
    except ValueError:
        return []

    proposals = [
        (float(cost_matrix[i, j]), int(i), int(j))
        for i, j in zip(row_indices, col_indices)
        if np.isfinite(cost_matrix[i, j])
    ]
    proposals.sort()

    used = np.zeros(n, dtype=bool)
    pairs = []
    for _, i, j in proposals:
        if used[i] or used[j]:
            continue
        pairs.append((i, j))
        used[i] = used[j] = True

    return pairs


# ============================================================================
# ADJACENT PAIRING
# ============================================================================

def adjacent_pairing(cost_matrix: np.ndarray) -> List[Tuple[int, int]]:
    """
    Circular-neighbour pairing.

    Line i is paired with line (i + 1) mod N when that pair is valid. This
    assumes the lines are sorted so that the two edges of a tube are
    neighbours. A line already used by an earlier pair is skipped, so two
    lines give one pair rather than the same pair twice.

    Args:
        cost_matrix: Gated cost matrix [N, N] over angle-sorted lines

    Returns:
        List of (i, (i + 1) mod N) pairs in index order
    """
    n = cost_matrix.shape[0]
    if n < 2:
        return []

    used = np.zeros(n, dtype=bool)
    pairs = []
    for i in range(n):
        j = (i + 1) % n
        if used[i] or used[j] or not np.isfinite(cost_matrix[i, j]):
            continue
        pairs.append((i, j))
        used[i] = used[j] = True

    return pairs


# ============================================================================
# DISPATCH
# ============================================================================

def pair_lines(cost_matrix: np.ndarray, strategy: str = "greedy") -> List[Tuple[int, int]]:
    """
    Pair lines using the named strategy.

    Args:
        cost_matrix: Gated cost matrix [N, N]
        strategy: One of "greedy", "hungarian" or "adjacent"

    Returns:
        List of (i, j) index pairs with no index used twice
    """
    if strategy == "greedy":
        return greedy_pairing(cost_matrix)
    elif strategy == "hungarian":
        return hungarian_pairing(cost_matrix)
    elif strategy == "adjacent":
        return adjacent_pairing(cost_matrix)
    raise ValueError(f"Unknown pairing strategy: {strategy!r} (expected one of {PAIRING_STRATEGIES})")
