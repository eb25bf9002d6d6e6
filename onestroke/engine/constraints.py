"""Cheap board filters applied before any path search.

The checks here are ordered by cost in the generator: parity and no-band
arithmetic are O(cells) scans, connectivity is a single BFS, and only boards
surviving all three reach the backtracking solver.
"""

from __future__ import annotations

import math
import random
from collections import deque
from typing import Deque, Optional, Set, Tuple

from ..core.constants import MAX_RELAX_LEVEL, MIN_OBSTACLES_BY_SIZE, OUTER_RATIOS
from ..core.exceptions import InvalidParametersError
from ..core.models import Cell, NoBandConstraints
from .grid import Board


# ----------------------------------------------------------------------
# Parity
# ----------------------------------------------------------------------
def parity_counts(board: Board) -> Tuple[int, int]:
    """Return passable cell counts for the (row+col) even and odd classes."""

    even = odd = 0
    for row, col in board.iter_cells():
        if not board.is_passable(row, col):
            continue
        if (row + col) % 2 == 0:
            even += 1
        else:
            odd += 1
    return even, odd


def parity_imbalance(board: Board) -> int:
    even, odd = parity_counts(board)
    return abs(even - odd)


def parity_check(board: Board) -> bool:
    """Necessary condition for a Hamiltonian path on a grid graph.

    Every step alternates colour classes, so the classes may differ by at
    most one cell.
    """

    return parity_imbalance(board) <= 1


# ----------------------------------------------------------------------
# Local degree accounting
# ----------------------------------------------------------------------
def can_place_obstacle(board: Board, cell: Cell) -> bool:
    """Whether turning ``cell`` into an obstacle keeps its neighbours usable.

    A passable neighbour left with no passable neighbours is unreachable; an
    inner neighbour left with a single one is a forced dead end, which only
    an outer cell (a legal endpoint) may be.
    """

    row, col = cell
    if not board.is_passable(row, col):
        return False
    for nr, nc in board.passable_neighbors(row, col):
        remaining = sum(1 for other in board.passable_neighbors(nr, nc) if other != cell)
        if remaining == 0:
            return False
        if remaining <= 1 and not board.is_outer(nr, nc):
            return False
    return True


# ----------------------------------------------------------------------
# No-band constraints
# ----------------------------------------------------------------------
def no_band_constraints(size: int, obstacles: int, relax_level: int = 0) -> NoBandConstraints:
    """Derive the band-avoidance limits for a board.

    ``relax_level`` 0 is strict; each further level lengthens the allowed
    obstacle run by one and tolerates more obstacles on the border.
    """

    if not 0 <= relax_level <= MAX_RELAX_LEVEL:
        raise InvalidParametersError(f"Relax level must be 0-{MAX_RELAX_LEVEL}, got {relax_level}")
    min_passable_per_line = 2
    base_max_run = max(3, math.floor(size * 0.6))
    total_cells = size * size
    outer_count = 1 if size == 1 else size * 4 - 4
    expected_outer = obstacles * (outer_count / total_cells)
    outer_ratio = OUTER_RATIOS[min(relax_level, len(OUTER_RATIOS) - 1)]
    outer_max = min(obstacles, max(2, math.floor(expected_outer * outer_ratio)))
    return NoBandConstraints(
        min_passable_per_line=min_passable_per_line,
        max_obstacle_run=base_max_run + relax_level,
        outer_min=0,
        outer_max=outer_max,
        max_obstacles_no_band=total_cells - min_passable_per_line * size,
    )


def is_feasible(size: int, obstacles: int, relax_level: int = 0) -> bool:
    """Arithmetic feasibility test run before any search is attempted."""

    if obstacles < 0 or size * size - obstacles < 2:
        return False
    limits = no_band_constraints(size, obstacles, relax_level)
    if obstacles > limits.max_obstacles_no_band:
        return False
    return limits.outer_min <= limits.outer_max


def max_obstacle_run(board: Board) -> int:
    longest = 0
    for line in _lines(board):
        run = 0
        for row, col in line:
            if board.is_obstacle(row, col):
                run += 1
                longest = max(longest, run)
            else:
                run = 0
    return longest


def count_outer_obstacles(board: Board) -> int:
    return sum(1 for row, col in board.obstacle_cells() if board.is_outer(row, col))


def has_min_passable_per_line(board: Board, min_passable: int) -> bool:
    for line in _lines(board):
        if sum(1 for row, col in line if board.is_passable(row, col)) < min_passable:
            return False
    return True


def board_acceptable(board: Board, obstacle_count: int, relax_level: int = 0) -> bool:
    """Composite no-band check: line minimums, run length, border share."""

    limits = no_band_constraints(board.size, obstacle_count, relax_level)
    if obstacle_count > limits.max_obstacles_no_band:
        return False
    if not has_min_passable_per_line(board, limits.min_passable_per_line):
        return False
    if max_obstacle_run(board) > limits.max_obstacle_run:
        return False
    outer = count_outer_obstacles(board)
    return limits.outer_min <= outer <= limits.outer_max


def _lines(board: Board):
    size = board.size
    for row in range(size):
        yield [(row, col) for col in range(size)]
    for col in range(size):
        yield [(row, col) for row in range(size)]


# ----------------------------------------------------------------------
# Connectivity
# ----------------------------------------------------------------------
def connected(board: Board) -> bool:
    """True when all passable cells form one 4-connected component."""

    passable = board.passable_cells()
    if not passable:
        return False
    start = passable[0]
    seen: Set[Cell] = {start}
    queue: Deque[Cell] = deque([start])
    while queue:
        row, col = queue.popleft()
        for neighbor in board.passable_neighbors(row, col):
            if neighbor in seen:
                continue
            seen.add(neighbor)
            queue.append(neighbor)
    return len(seen) == len(passable)


# ----------------------------------------------------------------------
# Obstacle count recommendations
# ----------------------------------------------------------------------
def min_obstacles_for_size(size: int) -> int:
    return MIN_OBSTACLES_BY_SIZE.get(size, max(0, math.floor(size * 1.2)))


def random_initial_obstacles(size: int, rng: Optional[random.Random] = None) -> int:
    """Pick a default obstacle count between 10% and 20% of the board."""

    rng = rng or random.Random()
    total_cells = size * size
    min_percent = math.ceil(total_cells * 0.1)
    max_percent = math.floor(total_cells * 0.2)
    max_no_band = no_band_constraints(size, max_percent).max_obstacles_no_band
    upper_cap = min(max_percent, max_no_band, total_cells - 2)
    lower = max(min_obstacles_for_size(size), min_percent)
    upper = max(lower, upper_cap)
    return rng.randint(lower, upper)
