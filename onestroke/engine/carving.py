"""Carve a path of an exact length out of an empty board.

The board handed back to the generator is a byproduct: every cell the path
does not visit becomes an obstacle, so the result is solvable by
construction and needs no separate existence check.

Each call first runs a short degree-tracking walk (the same engine the
solver uses). When that walk fails or leaves a board outside the no-band
limits, the carver reshapes a covering path instead:

  1. start from a serpentine over the whole board,
  2. randomise it with backbite moves (reverse the prefix or suffix that
     ends next to an endpoint's other neighbour),
  3. cut two-cell U-turns ``a b c d`` where ``a`` touches ``d``, or trim an
     endpoint, while the no-band limits still hold,
  4. keep backbiting until both endpoints sit on the border.

Every step keeps the list a valid path over the remaining passable cells.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from ..core.exceptions import SearchExhausted
from ..core.models import Cell, NoBandConstraints, Path
from ..utils.logger import get_logger
from .budget import SearchBudget
from .grid import Board, is_neighbor, is_outer, neighbors4, ring, serpentine_path
from .search import BacktrackingSearch, DegreeArena

LOGGER = get_logger(__name__)


@dataclass
class CarverConfig:
    max_iterations: int = 4_000
    # Per-start step cap is also bounded by this many steps per path cell
    iterations_per_cell: int = 20
    max_start_attempts: int = 2
    # Warnsdorff-ordered moves shuffled among the first ``jitter`` candidates
    jitter: int = 3
    # Backbite moves per board cell before reshaping starts
    shuffle_factor: int = 10
    # Extra backbite rounds allowed while no cut or endpoint fix is possible
    max_stalls: int = 60


class PathCarver(BacktrackingSearch):
    def __init__(self, config: Optional[CarverConfig] = None, rng: Optional[random.Random] = None) -> None:
        self.config = config or CarverConfig()
        super().__init__(self.config.max_iterations, rng)

    def carve(
        self,
        size: int,
        length: int,
        budget: Optional[SearchBudget] = None,
        limits: Optional[NoBandConstraints] = None,
    ) -> Optional[Path]:
        """Return ``length`` distinct cells from an outer start to a different outer cell.

        With ``limits`` the board left behind also respects the per-line
        minimum, the obstacle run cap and the border obstacle maximum.
        """

        self._begin(budget)
        if length < 2 or length > size * size:
            self.stats.rejected_by = "length"
            return None

        self.max_iterations = min(self.config.max_iterations, self.config.iterations_per_cell * length)
        path = self._walk(size, length)
        if path is not None and self._respects(size, path, limits):
            return path
        if self._out_of_time():
            return None
        path = self.reshape(size, length, limits)
        if path is None:
            self.stats.rejected_by = "reshape"
        return path

    # ------------------------------------------------------------------
    # Degree-tracking walk
    # ------------------------------------------------------------------
    def _walk(self, size: int, length: int) -> Optional[Path]:
        board = Board.empty(size)
        starts = DegreeArena(board).outer_indices()
        self.rng.shuffle(starts)

        for start in starts[: self.config.max_start_attempts]:
            if self._out_of_time():
                break
            self._begin_attempt()
            arena = DegreeArena(board)
            self.stats.start_cells.append(arena.cell(start))
            arena.visit(start)
            path = [start]
            try:
                if self._extend(arena, path, length):
                    return arena.to_path(path)
            except SearchExhausted as exc:
                self.stats.exhausted_starts += 1
                LOGGER.debug("Carve from %s abandoned: %s", arena.cell(start), exc)
        return None

    def _extend(self, arena: DegreeArena, path: List[int], length: int) -> bool:
        self._tick()
        depth = len(path)
        if depth == length:
            return arena.outer[path[-1]]
        if arena.outer_left == 0:
            return False

        remaining = length - depth
        candidates = []
        for cand in arena.open_neighbors(path[-1]):
            if remaining == 1:
                if arena.outer[cand]:
                    candidates.append(cand)
                continue
            # Must still be able to walk back out to the border.
            if ring(arena.cell(cand), arena.size) > remaining - 1:
                continue
            if arena.degree[cand] == 0:
                continue
            candidates.append(cand)

        for cand in self._order(arena, candidates):
            arena.visit(cand)
            path.append(cand)
            if self._extend(arena, path, length):
                return True
            path.pop()
            arena.unvisit(cand)
        return False

    def _order(self, arena: DegreeArena, candidates: List[int]) -> List[int]:
        keyed = sorted((arena.degree[cand], self.rng.random(), cand) for cand in candidates)
        ordered = [item[2] for item in keyed]
        head = ordered[: self.config.jitter]
        self.rng.shuffle(head)
        return head + ordered[self.config.jitter:]

    @staticmethod
    def _respects(size: int, path: Path, limits: Optional[NoBandConstraints]) -> bool:
        if limits is None:
            return True
        counts = _LineCounts(size, Board.from_path(size, path).obstacle_cells())
        return limits.outer_min <= counts.outer <= limits.outer_max and counts.within(limits)

    # ------------------------------------------------------------------
    # Reshaping
    # ------------------------------------------------------------------
    def reshape(self, size: int, length: int, limits: Optional[NoBandConstraints] = None) -> Optional[Path]:
        """Shrink a shuffled covering path to ``length`` cells under ``limits``."""

        if length < 2 or length > size * size:
            return None
        path = _ReshapedPath(size, self.rng)
        path.shuffle(self.config.shuffle_factor * size * size)

        stalls = 0
        while len(path) > length:
            if self._out_of_time():
                return None
            if path.cut(len(path) - length, limits):
                continue
            stalls += 1
            if stalls > self.config.max_stalls:
                LOGGER.debug("Reshape stalled at %d cells (target %d)", len(path), length)
                return None
            path.shuffle(2 * size)

        for _ in range(self.config.max_stalls * size):
            if path.ends_on_border():
                cells = path.cells()
                LOGGER.debug("Reshaped %dx%d path to %d cells", size, size, len(cells))
                return cells
            path.backbite()
        return None


class _LineCounts:
    """Obstacle bookkeeping per row and column for the no-band checks."""

    def __init__(self, size: int, obstacles: Sequence[Cell]) -> None:
        self.size = size
        self.blocked: Set[Cell] = set(obstacles)
        self.outer = sum(1 for cell in self.blocked if is_outer(cell, size))

    def within(self, limits: NoBandConstraints, extra: Sequence[Cell] = ()) -> bool:
        blocked = self.blocked.union(extra)
        rows = {row for row, _ in extra} if extra else set(range(self.size))
        cols = {col for _, col in extra} if extra else set(range(self.size))
        for row in rows:
            if not self._line_ok([(row, col) in blocked for col in range(self.size)], limits):
                return False
        for col in cols:
            if not self._line_ok([(row, col) in blocked for row in range(self.size)], limits):
                return False
        return True

    def _line_ok(self, line: List[bool], limits: NoBandConstraints) -> bool:
        if self.size - sum(line) < limits.min_passable_per_line:
            return False
        run = 0
        for blocked in line:
            run = run + 1 if blocked else 0
            if run > limits.max_obstacle_run:
                return False
        return True


class _ReshapedPath:
    """Covering path over the passable cells, edited in place."""

    def __init__(self, size: int, rng: random.Random) -> None:
        self.size = size
        self.rng = rng
        cells = serpentine_path(size)
        if rng.random() < 0.5:
            cells = [(col, row) for row, col in cells]
        self.path: List[Cell] = cells
        self.pos: Dict[Cell, int] = {cell: index for index, cell in enumerate(cells)}
        self.counts = _LineCounts(size, ())

    def __len__(self) -> int:
        return len(self.path)

    def cells(self) -> Path:
        return list(self.path)

    def ends_on_border(self) -> bool:
        size = self.size
        return is_outer(self.path[0], size) and is_outer(self.path[-1], size)

    # Backbite: join an endpoint to one of its other path neighbours and
    # reverse the stretch in between.
    def backbite(self) -> None:
        path = self.path
        at_head = self.rng.random() < 0.5
        end = path[0] if at_head else path[-1]
        beside = path[1] if at_head else path[-2]
        options = [cell for cell in neighbors4(end, self.size) if cell != beside and cell in self.pos]
        if not options:
            return
        index = self.pos[self.rng.choice(options)]
        if at_head:
            path[:index] = path[index - 1::-1]
            changed = range(index)
        else:
            path[index + 1:] = path[:index:-1]
            changed = range(index + 1, len(path))
        for i in changed:
            self.pos[path[i]] = i

    def shuffle(self, moves: int) -> None:
        for _ in range(moves):
            self.backbite()

    def cut(self, needed: int, limits: Optional[NoBandConstraints]) -> bool:
        """Remove a U-turn pair (or one endpoint) that keeps ``limits``."""

        path = self.path
        if needed >= 2 and len(path) > 4:
            starts = [i for i in range(len(path) - 3) if is_neighbor(path[i], path[i + 3])]
            self.rng.shuffle(starts)
            for i in starts:
                pair = (path[i + 1], path[i + 2])
                if self._allowed(pair, limits):
                    self._drop(pair, i + 1)
                    return True
        if len(path) <= 2:
            return False
        ends = [0, len(path) - 1]
        self.rng.shuffle(ends)
        for index in ends:
            cell = path[index]
            if self._allowed((cell,), limits):
                self._drop((cell,), index)
                return True
        return False

    def _allowed(self, cells: Sequence[Cell], limits: Optional[NoBandConstraints]) -> bool:
        if limits is None:
            return True
        outer = self.counts.outer + sum(1 for cell in cells if is_outer(cell, self.size))
        if outer > limits.outer_max:
            return False
        return self.counts.within(limits, cells)

    def _drop(self, cells: Sequence[Cell], index: int) -> None:
        del self.path[index:index + len(cells)]
        for cell in cells:
            del self.pos[cell]
            self.counts.blocked.add(cell)
            if is_outer(cell, self.size):
                self.counts.outer += 1
        for i in range(index, len(self.path)):
            self.pos[self.path[i]] = i
