"""Board representation and geometry helpers."""

from __future__ import annotations

import random
from typing import Iterable, Iterator, List, Optional, Sequence

from ..core.constants import (
    MAX_BOARD_SIZE,
    MIN_BOARD_SIZE,
    OBSTACLE_SYMBOL,
    ORTHOGONAL_STEPS,
    PASSABLE_SYMBOL,
    Bounds,
    CellState,
)
from ..core.exceptions import BoardLoadError, InvalidParametersError
from ..core.models import Cell, Path
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)


# ----------------------------------------------------------------------
# Geometry
# ----------------------------------------------------------------------
def is_outer(cell: Cell, size: int) -> bool:
    row, col = cell
    return row == 0 or col == 0 or row == size - 1 or col == size - 1


def ring(cell: Cell, size: int) -> int:
    """Distance of ``cell`` to the nearest border; outer cells have ring 0."""

    row, col = cell
    return min(row, col, size - 1 - row, size - 1 - col)


def neighbors4(cell: Cell, size: int) -> List[Cell]:
    row, col = cell
    out: List[Cell] = []
    for dr, dc in ORTHOGONAL_STEPS:
        nr, nc = row + dr, col + dc
        if 0 <= nr < size and 0 <= nc < size:
            out.append((nr, nc))
    return out


def is_neighbor(a: Cell, b: Cell) -> bool:
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def outer_cells(size: int) -> List[Cell]:
    """Border cells in clockwise order starting at the top-left corner."""

    if size == 1:
        return [(0, 0)]
    cells: List[Cell] = [(0, c) for c in range(size)]
    cells += [(r, size - 1) for r in range(1, size)]
    cells += [(size - 1, c) for c in range(size - 2, -1, -1)]
    cells += [(r, 0) for r in range(size - 2, 0, -1)]
    return cells


def serpentine_path(size: int) -> Path:
    """Boustrophedon traversal of the full board, row by row."""

    path: Path = []
    for row in range(size):
        cols = range(size) if row % 2 == 0 else range(size - 1, -1, -1)
        path.extend((row, col) for col in cols)
    return path


def pick_outer_to_outer_segment(
    base_path: Sequence[Cell],
    length: int,
    size: int,
    rng: Optional[random.Random] = None,
) -> Optional[Path]:
    """Pick a contiguous slice of ``base_path`` whose two ends are outer cells."""

    if length < 2 or length > len(base_path):
        return None
    rng = rng or random.Random()
    starts = [
        index
        for index in range(len(base_path) - length + 1)
        if is_outer(base_path[index], size)
        and is_outer(base_path[index + length - 1], size)
        and base_path[index] != base_path[index + length - 1]
    ]
    if not starts:
        return None
    start = rng.choice(starts)
    return list(base_path[start:start + length])


# ----------------------------------------------------------------------
# Board
# ----------------------------------------------------------------------
class Board:
    """Square grid of passable and obstacle cells."""

    def __init__(self, size: int, cells: Optional[List[List[CellState]]] = None) -> None:
        if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
            raise InvalidParametersError(
                f"Board size {size} outside supported range {MIN_BOARD_SIZE}-{MAX_BOARD_SIZE}"
            )
        self.size = size
        self.bounds = Bounds(rows=size, cols=size)
        if cells is None:
            cells = [[CellState.PASSABLE] * size for _ in range(size)]
        self.cells: List[List[CellState]] = cells

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def empty(cls, size: int) -> "Board":
        return cls(size)

    @classmethod
    def from_path(cls, size: int, path: Iterable[Cell]) -> "Board":
        """Board whose passable cells are exactly the cells of ``path``."""

        board = cls(size, [[CellState.OBSTACLE] * size for _ in range(size)])
        for row, col in path:
            board.cells[row][col] = CellState.PASSABLE
        return board

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> "Board":
        """Parse rows of ``.`` (passable) and ``#`` (obstacle) characters."""

        lines = [line.strip() for line in rows if line.strip()]
        size = len(lines)
        if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
            raise BoardLoadError(
                f"Board must have {MIN_BOARD_SIZE}-{MAX_BOARD_SIZE} rows, got {size}"
            )
        cells: List[List[CellState]] = []
        for index, line in enumerate(lines):
            if len(line) != size:
                raise BoardLoadError(f"Row {index} has length {len(line)}, expected {size}")
            row: List[CellState] = []
            for symbol in line:
                if symbol == PASSABLE_SYMBOL:
                    row.append(CellState.PASSABLE)
                elif symbol == OBSTACLE_SYMBOL:
                    row.append(CellState.OBSTACLE)
                else:
                    raise BoardLoadError(f"Unknown cell symbol {symbol!r} in row {index}")
            cells.append(row)
        board = cls(size, cells)
        LOGGER.debug("Loaded %s", board)
        return board

    # ------------------------------------------------------------------
    # Cell manipulation
    # ------------------------------------------------------------------
    def set_obstacle(self, row: int, col: int) -> None:
        self.cells[row][col] = CellState.OBSTACLE

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_passable(self, row: int, col: int) -> bool:
        return self.cells[row][col] == CellState.PASSABLE

    def is_obstacle(self, row: int, col: int) -> bool:
        return self.cells[row][col] == CellState.OBSTACLE

    def is_outer(self, row: int, col: int) -> bool:
        return is_outer((row, col), self.size)

    def ring(self, row: int, col: int) -> int:
        return ring((row, col), self.size)

    def neighbors(self, row: int, col: int) -> List[Cell]:
        return neighbors4((row, col), self.size)

    def passable_neighbors(self, row: int, col: int) -> List[Cell]:
        return [(r, c) for r, c in self.neighbors(row, col) if self.is_passable(r, c)]

    def iter_cells(self) -> Iterator[Cell]:
        for row in range(self.size):
            for col in range(self.size):
                yield row, col

    def passable_cells(self) -> List[Cell]:
        return [(r, c) for r, c in self.iter_cells() if self.is_passable(r, c)]

    def obstacle_cells(self) -> List[Cell]:
        return [(r, c) for r, c in self.iter_cells() if self.is_obstacle(r, c)]

    def outer_passable_cells(self) -> List[Cell]:
        return [cell for cell in outer_cells(self.size) if self.is_passable(*cell)]

    @property
    def passable_count(self) -> int:
        return sum(1 for row in self.cells for state in row if state == CellState.PASSABLE)

    @property
    def obstacle_count(self) -> int:
        return self.size * self.size - self.passable_count

    # ------------------------------------------------------------------
    # Serialization helpers
    # ------------------------------------------------------------------
    def to_rows(self) -> List[str]:
        return [
            "".join(PASSABLE_SYMBOL if state == CellState.PASSABLE else OBSTACLE_SYMBOL for state in row)
            for row in self.cells
        ]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.size == other.size and self.cells == other.cells

    def __repr__(self) -> str:
        return f"Board(size={self.size}, obstacles={self.obstacle_count})"
