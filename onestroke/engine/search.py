"""Degree-tracking state shared by the path solver and the path carver."""

from __future__ import annotations

import random
from typing import List, Optional

from ..core.exceptions import SearchExhausted
from ..core.models import Cell, Path, SearchStats
from .budget import SearchBudget
from .grid import Board


class DegreeArena:
    """Visited flags and live remaining-degree counters for one search call.

    Cells are indexed ``row * size + col``. ``degree[i]`` is the number of
    unvisited passable neighbours of cell ``i`` and is updated incrementally
    by :meth:`visit` / :meth:`unvisit`.
    """

    def __init__(self, board: Board) -> None:
        size = board.size
        self.size = size
        count = size * size
        self.passable: List[bool] = [False] * count
        self.outer: List[bool] = [False] * count
        self.adjacency: List[List[int]] = [[] for _ in range(count)]
        for row, col in board.iter_cells():
            index = row * size + col
            self.passable[index] = board.is_passable(row, col)
            self.outer[index] = board.is_outer(row, col)
        for index in range(count):
            if not self.passable[index]:
                continue
            row, col = divmod(index, size)
            self.adjacency[index] = [
                r * size + c for r, c in board.neighbors(row, col) if self.passable[r * size + c]
            ]
        self.visited: List[bool] = [False] * count
        self.degree: List[int] = [len(adj) for adj in self.adjacency]
        self.total = sum(self.passable)
        self.outer_left = sum(1 for i in range(count) if self.passable[i] and self.outer[i])

    def visit(self, index: int) -> None:
        self.visited[index] = True
        if self.outer[index]:
            self.outer_left -= 1
        for neighbor in self.adjacency[index]:
            self.degree[neighbor] -= 1

    def unvisit(self, index: int) -> None:
        self.visited[index] = False
        if self.outer[index]:
            self.outer_left += 1
        for neighbor in self.adjacency[index]:
            self.degree[neighbor] += 1

    def open_neighbors(self, index: int) -> List[int]:
        return [n for n in self.adjacency[index] if not self.visited[n]]

    def outer_indices(self) -> List[int]:
        return [i for i, ok in enumerate(self.passable) if ok and self.outer[i]]

    def cell(self, index: int) -> Cell:
        return divmod(index, self.size)

    def to_path(self, indices: List[int]) -> Path:
        return [self.cell(i) for i in indices]


class BacktrackingSearch:
    """Step accounting common to the backtracking searches.

    Each start attempt owns a fresh :class:`DegreeArena` and its own step
    counter; :meth:`_tick` raises :class:`SearchExhausted` when the per-attempt
    iteration cap is passed or when the budget has run out at a yield point.
    """

    def __init__(self, max_iterations: int, rng: Optional[random.Random] = None) -> None:
        self.max_iterations = max_iterations
        self.rng = rng or random.Random()
        self.stats = SearchStats()
        self._budget: Optional[SearchBudget] = None
        self._steps = 0

    def _begin(self, budget: Optional[SearchBudget]) -> None:
        self.stats = SearchStats()
        self._budget = budget

    def _begin_attempt(self) -> None:
        self._steps = 0
        self.stats.starts_tried += 1

    def _tick(self) -> None:
        self._steps += 1
        self.stats.steps += 1
        if self._steps > self.max_iterations:
            raise SearchExhausted("iteration cap reached")
        budget = self._budget
        if budget is not None and self._steps % budget.yield_interval == 0:
            budget.pause()
            if budget.expired():
                raise SearchExhausted("deadline reached")

    def _out_of_time(self) -> bool:
        return self._budget is not None and self._budget.expired()
