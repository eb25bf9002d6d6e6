"""Shared constants and enumerations for the one-stroke puzzle engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class CellState(str, Enum):
    """All supported cell states on a board."""

    PASSABLE = "PASSABLE"
    OBSTACLE = "OBSTACLE"


class GenerationPhase(str, Enum):
    """Which stage of the generator produced a puzzle."""

    TRIVIAL = "trivial"
    SOLVER = "solver"
    CARVING = "carving"
    SERPENTINE = "serpentine"


ORTHOGONAL_STEPS: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))

MIN_BOARD_SIZE = 3
MAX_BOARD_SIZE = 20

MAX_RELAX_LEVEL = 3
# Share of the expected outer obstacles tolerated at each relax level.
OUTER_RATIOS: Tuple[float, ...] = (0.7, 0.85, 1.0, 1.2)

MIN_OBSTACLES_BY_SIZE: Dict[int, int] = {6: 4, 7: 6, 8: 8, 9: 10, 10: 12}

PASSABLE_SYMBOL = "."
OBSTACLE_SYMBOL = "#"


@dataclass(frozen=True)
class Bounds:
    """Simple rectangle bounds helper."""

    rows: int
    cols: int

    def contains(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols
