"""Hamiltonian path solvers for finished boards.

Two backends share one contract: given a board, return a path that visits
every passable cell exactly once with both ends on the border, or ``None``.

- :class:`HamiltonianSolver` is a degree-pruned depth-first search used
  inside the generator's time slices.
- :func:`solve_hamiltonian_cpsat` is an exact CP-SAT model (OR-Tools) for
  loaded boards where completeness matters more than latency.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ortools.sat.python import cp_model

from ..core.exceptions import SearchExhausted
from ..core.models import Cell, Path
from ..utils.logger import get_logger
from .budget import SearchBudget
from .constraints import connected, parity_check
from .grid import Board
from .search import BacktrackingSearch, DegreeArena

LOGGER = get_logger(__name__)


@dataclass
class SolverConfig:
    max_iterations: int = 50_000
    max_start_attempts: int = 8
    endgame_window: int = 10


class HamiltonianSolver(BacktrackingSearch):
    """Backtracking search with orphan lookahead and forced-move detection."""

    def __init__(self, config: Optional[SolverConfig] = None, rng: Optional[random.Random] = None) -> None:
        self.config = config or SolverConfig()
        super().__init__(self.config.max_iterations, rng)

    # ------------------------------------------------------------------
    # Public entrypoint
    # ------------------------------------------------------------------
    def solve(self, board: Board, budget: Optional[SearchBudget] = None) -> Optional[Path]:
        self._begin(budget)
        if board.passable_count < 2:
            self.stats.rejected_by = "size"
            return None
        if not parity_check(board):
            self.stats.rejected_by = "parity"
            LOGGER.debug("Board rejected by parity before search")
            return None
        if not connected(board):
            self.stats.rejected_by = "connectivity"
            LOGGER.debug("Board rejected: passable cells are disconnected")
            return None

        starts = DegreeArena(board).outer_indices()
        if len(starts) < 2:
            self.stats.rejected_by = "outer"
            return None
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
                if self._extend(arena, start, path):
                    LOGGER.debug(
                        "Solved %s from %s after %d steps",
                        board, arena.cell(start), self.stats.steps,
                    )
                    return arena.to_path(path)
            except SearchExhausted as exc:
                self.stats.exhausted_starts += 1
                LOGGER.debug("Start %s abandoned: %s", arena.cell(start), exc)
        return None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def _extend(self, arena: DegreeArena, current: int, path: List[int]) -> bool:
        self._tick()
        length = len(path)
        if length == arena.total:
            return arena.outer[current]
        # The last cell must be an unvisited outer cell.
        if arena.outer_left == 0:
            return False

        remaining = arena.total - length
        candidates = [
            cand for cand in arena.open_neighbors(current)
            if not self._orphans_neighbor(arena, current, cand)
        ]
        if not candidates:
            return False

        if remaining > 1:
            # A degree-1 outer cell can still be the final cell later on.
            forced = [
                cand for cand in candidates
                if arena.degree[cand] == 0 or (arena.degree[cand] == 1 and not arena.outer[cand])
            ]
            if len(forced) > 1:
                return False
            if forced:
                candidates = forced

        for cand in self._order(arena, candidates, remaining):
            arena.visit(cand)
            path.append(cand)
            if self._extend(arena, cand, path):
                return True
            path.pop()
            arena.unvisit(cand)
        return False

    @staticmethod
    def _orphans_neighbor(arena: DegreeArena, current: int, cand: int) -> bool:
        """Would stepping to ``cand`` strand another open neighbour of ``current``?"""

        arena.visit(cand)
        try:
            return any(
                not arena.visited[other] and arena.degree[other] == 0
                for other in arena.adjacency[current]
                if other != cand
            )
        finally:
            arena.unvisit(cand)

    def _order(self, arena: DegreeArena, candidates: List[int], remaining: int) -> List[int]:
        if len(candidates) == 1:
            return candidates
        endgame = remaining <= self.config.endgame_window
        keyed = [
            (
                arena.degree[cand],
                0 if endgame and arena.outer[cand] else 1,
                self.rng.random(),
                cand,
            )
            for cand in candidates
        ]
        keyed.sort()
        return [item[3] for item in keyed]


# ----------------------------------------------------------------------
# Exact CP-SAT backend
# ----------------------------------------------------------------------
def solve_hamiltonian_cpsat(
    board: Board,
    timeout: float = 10.0,
    seed: Optional[int] = None,
    num_workers: int = 4,
) -> Optional[Path]:
    """Find a covering path via CP-SAT.

    The path is modelled as a circuit through a virtual depot node that is
    linked only to outer passable cells, so the arcs leaving and entering the
    depot pick the two endpoints. No self loops are added, which forces every
    passable cell onto the circuit.
    """
    if board.passable_count < 2:
        return None
    if not parity_check(board) or not connected(board):
        return None

    cells: List[Cell] = board.passable_cells()
    node_of: Dict[Cell, int] = {cell: index + 1 for index, cell in enumerate(cells)}
    outer_nodes = [node_of[cell] for cell in cells if board.is_outer(*cell)]
    if len(outer_nodes) < 2:
        return None

    model = cp_model.CpModel()

    # ------------------------------------------------------------------
    # Step 1: Arc literals
    # ------------------------------------------------------------------
    arcs: List[Tuple[int, int, cp_model.IntVar]] = []
    depot_out: Dict[int, cp_model.IntVar] = {}
    successor: Dict[Tuple[int, int], cp_model.IntVar] = {}

    for node in outer_nodes:
        leave = model.new_bool_var(f"depot_{node}")
        enter = model.new_bool_var(f"{node}_depot")
        arcs.append((0, node, leave))
        arcs.append((node, 0, enter))
        depot_out[node] = leave

    for cell in cells:
        tail = node_of[cell]
        for neighbor in board.passable_neighbors(*cell):
            head = node_of[neighbor]
            lit = model.new_bool_var(f"a_{tail}_{head}")
            arcs.append((tail, head, lit))
            successor[(tail, head)] = lit

    # ------------------------------------------------------------------
    # Step 2: Circuit and solve
    # ------------------------------------------------------------------
    model.add_circuit(arcs)

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = timeout
    solver.parameters.num_workers = num_workers
    if seed is not None:
        solver.parameters.random_seed = seed

    LOGGER.info(
        "CP-SAT: %d cells, %d arcs, solving (timeout=%0.1fs)...",
        len(cells), len(arcs), timeout,
    )
    status = solver.solve(model)
    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        LOGGER.info("CP-SAT: no covering path (status=%s)", solver.status_name(status))
        return None

    # ------------------------------------------------------------------
    # Step 3: Walk the circuit from the depot
    # ------------------------------------------------------------------
    next_node: Dict[int, int] = {
        tail: head for (tail, head), lit in successor.items() if solver.value(lit)
    }
    current = next(node for node, lit in depot_out.items() if solver.value(lit))
    path: Path = []
    while current:
        path.append(cells[current - 1])
        current = next_node.get(current, 0)
    LOGGER.info("CP-SAT: path of %d cells found in %.2fs", len(path), solver.wall_time)
    return path
