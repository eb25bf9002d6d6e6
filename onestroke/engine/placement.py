"""Obstacle placement strategies.

Each strategy mutates a board in place and returns the number of obstacles it
actually placed, which can fall short of the target when protected border
cells or local degree checks leave no legal cell. The generator picks the
strategy; strategies never choose each other.
"""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set, Type

from ..core.models import Cell, NoBandConstraints
from .constraints import can_place_obstacle, count_outer_obstacles, parity_counts
from .grid import Board, outer_cells


class PlacementStrategy(ABC):
    name: str = ""

    @abstractmethod
    def place(
        self,
        board: Board,
        target: int,
        rng: random.Random,
        constraints: Optional[NoBandConstraints] = None,
    ) -> int:
        """Place up to ``target`` obstacles on ``board`` and return the count placed."""

    @staticmethod
    def _protect_outer(board: Board, count: int, rng: random.Random) -> Set[Cell]:
        candidates = outer_cells(board.size)
        rng.shuffle(candidates)
        return set(candidates[:count])

    @staticmethod
    def _fill(board: Board, cells: List[Cell], quota: int, protected: Set[Cell]) -> int:
        placed = 0
        for row, col in cells:
            if placed >= quota:
                break
            if (row, col) in protected or board.is_obstacle(row, col):
                continue
            board.set_obstacle(row, col)
            placed += 1
        return placed


class CentralRingStrategy(PlacementStrategy):
    """Innermost ring first, keeping a reserve of border cells open."""

    name = "central_ring"

    def place(self, board, target, rng, constraints=None):
        size = board.size
        by_ring: Dict[int, List[Cell]] = {}
        for cell in board.iter_cells():
            by_ring.setdefault(board.ring(*cell), []).append(cell)
        ordered: List[Cell] = []
        for level in sorted(by_ring, reverse=True):
            cells = by_ring[level]
            rng.shuffle(cells)
            ordered.extend(cells)
        protected = self._protect_outer(board, max(4, math.floor(size * 0.8)), rng)
        return self._fill(board, ordered, target, protected)


class CheckerboardStrategy(PlacementStrategy):
    """Split the quota across colour classes so the passable classes stay balanced.

    Within a class cells are taken innermost ring first. A class that runs out
    of cells spills its remaining quota into the other class.
    """

    name = "checkerboard"

    def __init__(self, preferred_parity: int = 0) -> None:
        self.preferred_parity = preferred_parity

    def place(self, board, target, rng, constraints=None):
        size = board.size
        even_pass, odd_pass = parity_counts(board)
        diff = even_pass - odd_pass
        even_quota = (target + diff) // 2
        if (target + diff) % 2 and self.preferred_parity == 0:
            even_quota += 1
        even_quota = min(max(0, even_quota), target)
        quotas = {0: even_quota, 1: target - even_quota}

        classes: Dict[int, List[Cell]] = {0: [], 1: []}
        for cell in board.iter_cells():
            classes[(cell[0] + cell[1]) % 2].append(cell)
        for cells in classes.values():
            keyed = [(-board.ring(*cell), rng.random(), cell) for cell in cells]
            keyed.sort()
            cells[:] = [item[2] for item in keyed]

        protected = self._protect_outer(board, max(4, math.floor(size * 0.6)), rng)
        first = self.preferred_parity
        second = 1 - first
        placed = self._fill(board, classes[first], quotas[first], protected)
        shortfall = quotas[first] - placed
        placed_second = self._fill(board, classes[second], quotas[second] + shortfall, protected)
        placed += placed_second
        if placed < target:
            placed += self._fill(board, classes[first], target - placed, protected)
        return placed


class UniformRandomStrategy(PlacementStrategy):
    name = "uniform_random"

    def place(self, board, target, rng, constraints=None):
        cells = list(board.iter_cells())
        rng.shuffle(cells)
        protected = self._protect_outer(board, max(6, math.floor(board.size * 1.2)), rng)
        return self._fill(board, cells, target, protected)


class DegreeCheckedStrategy(PlacementStrategy):
    """Commit obstacles one at a time, each vetted by :func:`can_place_obstacle`.

    Cells next to existing obstacles are deferred; each pass raises the number
    of obstacle neighbours a cell may have. Placement alternates colour
    classes toward whichever has more passable cells and respects the border
    obstacle maximum when ``constraints`` is given.
    """

    name = "degree_checked"
    adjacency_limits = (0, 1, 4)

    def place(self, board, target, rng, constraints=None):
        pools: Dict[int, List[Cell]] = {0: [], 1: []}
        for cell in board.passable_cells():
            pools[(cell[0] + cell[1]) % 2].append(cell)
        for cells in pools.values():
            rng.shuffle(cells)

        outer_placed = count_outer_obstacles(board)
        outer_max = constraints.outer_max if constraints is not None else None
        placed = 0
        last_parity = 1

        for limit in self.adjacency_limits:
            while placed < target:
                even_pass, odd_pass = parity_counts(board)
                if even_pass != odd_pass:
                    order = [0, 1] if even_pass > odd_pass else [1, 0]
                else:
                    order = [1 - last_parity, last_parity]
                cell = None
                for parity in order:
                    cell = self._pick(board, pools[parity], limit, outer_placed, outer_max)
                    if cell is not None:
                        last_parity = parity
                        break
                if cell is None:
                    break
                board.set_obstacle(*cell)
                pools[last_parity].remove(cell)
                placed += 1
                if board.is_outer(*cell):
                    outer_placed += 1
            if placed >= target:
                break
        return placed

    @staticmethod
    def _pick(
        board: Board,
        pool: List[Cell],
        limit: int,
        outer_placed: int,
        outer_max: Optional[int],
    ) -> Optional[Cell]:
        for cell in pool:
            row, col = cell
            if not board.is_passable(row, col):
                continue
            if outer_max is not None and board.is_outer(row, col) and outer_placed >= outer_max:
                continue
            blocked = sum(1 for r, c in board.neighbors(row, col) if board.is_obstacle(r, c))
            if blocked > limit:
                continue
            if can_place_obstacle(board, cell):
                return cell
        return None


# Strategy registry
STRATEGIES: Dict[str, Type[PlacementStrategy]] = {
    CentralRingStrategy.name: CentralRingStrategy,
    CheckerboardStrategy.name: CheckerboardStrategy,
    UniformRandomStrategy.name: UniformRandomStrategy,
    DegreeCheckedStrategy.name: DegreeCheckedStrategy,
}


def get_strategy(name: str) -> PlacementStrategy:
    """Instantiate a placement strategy by registry name.

    Raises:
        KeyError: If ``name`` is not registered.
    """
    if name not in STRATEGIES:
        available = ", ".join(STRATEGIES.keys())
        raise KeyError(f"Unknown placement strategy '{name}'. Available strategies: {available}")
    return STRATEGIES[name]()
