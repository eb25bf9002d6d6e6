"""Quality metrics for candidate (board, path) pairs.

Higher totals are better. Positive terms reward ambiguity for the player
(branch edges, turns, scattered obstacles placed away from the border);
penalties discourage lopsided layouts, long obstacle runs along a line and
obstacles touching each other.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from ..core.models import Cell, Path, ScoreBreakdown
from .constraints import count_outer_obstacles
from .grid import Board, ring


@dataclass
class ScoreWeights:
    branch: float = 4.0
    turn: float = 0.18
    components: float = 0.8
    centrality: float = 3.0
    balance: float = 0.9
    run: float = 2.2
    outer: float = 2.0
    clump: float = 1.5


# ----------------------------------------------------------------------
# Path metrics
# ----------------------------------------------------------------------
def turn_count(path: Path) -> int:
    """Number of direction changes along ``path``."""

    turns = 0
    for index in range(2, len(path)):
        (r0, c0), (r1, c1), (r2, c2) = path[index - 2], path[index - 1], path[index]
        if (r1 - r0, c1 - c0) != (r2 - r1, c2 - c1):
            turns += 1
    return turns


def branch_edges(path: Path) -> int:
    """Adjacent path cells that are not consecutive steps.

    Every such pair is a place where a player could wander off the
    solution, so it is used as an ambiguity proxy.
    """

    position: Dict[Cell, int] = {cell: index for index, cell in enumerate(path)}
    extra = 0
    for index, (row, col) in enumerate(path):
        for other in ((row - 1, col), (row + 1, col), (row, col - 1), (row, col + 1)):
            other_index = position.get(other)
            if other_index is None or abs(other_index - index) == 1:
                continue
            extra += 1
    return extra // 2


# ----------------------------------------------------------------------
# Obstacle layout metrics
# ----------------------------------------------------------------------
def obstacle_components(board: Board) -> int:
    seen: Set[Cell] = set()
    components = 0
    for cell in board.obstacle_cells():
        if cell in seen:
            continue
        components += 1
        seen.add(cell)
        stack: List[Cell] = [cell]
        while stack:
            row, col = stack.pop()
            for neighbor in board.neighbors(row, col):
                if neighbor in seen or not board.is_obstacle(*neighbor):
                    continue
                seen.add(neighbor)
                stack.append(neighbor)
    return components


def obstacle_ring_mean(board: Board) -> float:
    obstacles = board.obstacle_cells()
    if not obstacles:
        return 0.0
    return sum(board.ring(*cell) for cell in obstacles) / len(obstacles)


def expected_ring_mean(size: int) -> float:
    """Mean ring value of a uniformly random cell."""

    total = sum(ring((row, col), size) for row in range(size) for col in range(size))
    return total / (size * size)


def centrality_bonus(board: Board, obstacle_count: int) -> float:
    if obstacle_count <= 0:
        return 0.0
    return (obstacle_ring_mean(board) - expected_ring_mean(board.size)) * obstacle_count * 2.5


def balance_penalty(board: Board) -> float:
    """Deviation of quadrant and border obstacle counts from an even spread."""

    size = board.size
    mid = size // 2
    quadrants = [0, 0, 0, 0]
    outer = 0
    obstacles = board.obstacle_cells()
    for row, col in obstacles:
        quadrants[(0 if row < mid else 2) + (0 if col < mid else 1)] += 1
        if board.is_outer(row, col):
            outer += 1
    total = len(obstacles)
    if total == 0:
        return 0.0

    ideal_quadrant = total / 4
    penalty = sum(abs(count - ideal_quadrant) for count in quadrants)
    outer_cells = size * 4 - 4
    ideal_outer = total * (outer_cells / (size * size))
    return penalty + abs(outer - ideal_outer)


def row_col_run_penalty(board: Board) -> int:
    size = board.size
    long_run = max(4, size // 2)
    dense_line = math.floor(size * 0.75)
    penalty = 0
    for transpose in (False, True):
        for major in range(size):
            run = count = 0
            for minor in range(size):
                row, col = (minor, major) if transpose else (major, minor)
                if board.is_obstacle(row, col):
                    count += 1
                    run += 1
                    if run >= long_run:
                        penalty += 1
                else:
                    run = 0
            if count >= dense_line:
                penalty += 3
    return penalty


def clump_pairs(board: Board) -> int:
    """Orthogonally adjacent obstacle pairs, each counted once."""

    pairs = 0
    for row, col in board.obstacle_cells():
        if row + 1 < board.size and board.is_obstacle(row + 1, col):
            pairs += 1
        if col + 1 < board.size and board.is_obstacle(row, col + 1):
            pairs += 1
    return pairs


# ----------------------------------------------------------------------
# Combined score
# ----------------------------------------------------------------------
def score_candidate(
    board: Board,
    path: Path,
    obstacle_count: Optional[int] = None,
    weights: Optional[ScoreWeights] = None,
) -> ScoreBreakdown:
    weights = weights or ScoreWeights()
    if obstacle_count is None:
        obstacle_count = board.obstacle_count

    breakdown = ScoreBreakdown(
        turns=turn_count(path),
        branch_edges=branch_edges(path),
        obstacle_components=obstacle_components(board),
        centrality_bonus=centrality_bonus(board, obstacle_count),
        balance_penalty=balance_penalty(board),
        run_penalty=row_col_run_penalty(board),
        outer_obstacles=count_outer_obstacles(board),
        clump_pairs=clump_pairs(board),
    )
    breakdown.total = (
        breakdown.branch_edges * weights.branch
        + breakdown.turns * weights.turn
        + breakdown.obstacle_components * weights.components
        + breakdown.centrality_bonus * weights.centrality
        - breakdown.balance_penalty * weights.balance
        - breakdown.run_penalty * weights.run
        - breakdown.outer_obstacles * weights.outer
        - breakdown.clump_pairs * weights.clump
    )
    return breakdown


def difficulty_rating(board: Board, path: Path) -> float:
    """Rate a solved board from 1.0 to 5.0 in steps of 0.1."""

    if len(path) < 2:
        return 1.0
    size = board.size
    total_cells = size * size
    passable = board.passable_count
    obstacles = total_cells - passable

    size_factor = min(max((size - 6) / 4, 0.0), 1.0)
    obstacle_factor = min((obstacles / total_cells) / 0.2, 1.0)
    turn_factor = min(turn_count(path) / (passable * 0.8), 1.0)
    branch_factor = min(branch_edges(path) / (passable * 0.5), 1.0)
    max_components = obstacles / 2
    component_factor = min(obstacle_components(board) / max_components, 1.0) if max_components > 0 else 0.0

    raw = (
        size_factor * 0.25
        + obstacle_factor * 0.25
        + turn_factor * 0.2
        + branch_factor * 0.2
        + component_factor * 0.1
    )
    return round(1.0 + raw * 4.0, 1)
