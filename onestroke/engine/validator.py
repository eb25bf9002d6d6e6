"""Deterministic invariant checks for solution paths."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Set

from ..core.exceptions import PathValidationError
from ..core.models import Cell
from ..utils.logger import get_logger
from .grid import Board, is_neighbor


LOGGER = get_logger(__name__)


@dataclass
class ValidationResult:
    ok: bool
    messages: List[str]


class PathValidator:
    """Runs deterministic validation over a (board, path) pair."""

    def validate(self, board: Board, path: Sequence[Cell]) -> ValidationResult:
        messages: List[str] = []
        try:
            self._check_length(board, path)
            self._check_cells(board, path)
            self._check_distinct(path)
            self._check_steps(path)
            self._check_endpoints(board, path)
        except PathValidationError as exc:
            messages.append(str(exc))
            LOGGER.error("Path validation failed: %s", exc)
            return ValidationResult(ok=False, messages=messages)
        return ValidationResult(ok=True, messages=[])

    def _check_length(self, board: Board, path: Sequence[Cell]) -> None:
        if len(path) < 2:
            raise PathValidationError(f"Path of length {len(path)} is too short")
        passable = board.passable_count
        if len(path) != passable:
            raise PathValidationError(
                f"Path covers {len(path)} cells but the board has {passable} passable cells"
            )

    def _check_cells(self, board: Board, path: Sequence[Cell]) -> None:
        for row, col in path:
            if not board.bounds.contains(row, col):
                raise PathValidationError(f"Cell ({row},{col}) is outside the board")
            if board.is_obstacle(row, col):
                raise PathValidationError(f"Path crosses obstacle at ({row},{col})")

    def _check_distinct(self, path: Sequence[Cell]) -> None:
        seen: Set[Cell] = set()
        for cell in path:
            if cell in seen:
                raise PathValidationError(f"Cell {cell} visited twice")
            seen.add(cell)

    def _check_steps(self, path: Sequence[Cell]) -> None:
        for index in range(1, len(path)):
            if not is_neighbor(path[index - 1], path[index]):
                raise PathValidationError(
                    f"Step {index} jumps from {path[index - 1]} to {path[index]}"
                )

    def _check_endpoints(self, board: Board, path: Sequence[Cell]) -> None:
        start, goal = path[0], path[-1]
        if not board.is_outer(*start):
            raise PathValidationError(f"Start {start} is not on the border")
        if not board.is_outer(*goal):
            raise PathValidationError(f"Goal {goal} is not on the border")
        if start == goal:
            raise PathValidationError("Start and goal coincide")


def is_valid_solution_path(board: Board, path: Sequence[Cell]) -> bool:
    return PathValidator().validate(board, path).ok
