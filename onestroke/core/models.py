"""Data models supporting the puzzle engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Cell = Tuple[int, int]
Path = List[Cell]


@dataclass(frozen=True)
class NoBandConstraints:
    """Limits that keep obstacles from forming bands or hugging the border."""

    min_passable_per_line: int
    max_obstacle_run: int
    outer_min: int
    outer_max: int
    max_obstacles_no_band: int


@dataclass
class ScoreBreakdown:
    """Individual quality terms of a candidate plus their weighted total."""

    turns: int = 0
    branch_edges: int = 0
    obstacle_components: int = 0
    centrality_bonus: float = 0.0
    balance_penalty: float = 0.0
    run_penalty: int = 0
    outer_obstacles: int = 0
    clump_pairs: int = 0
    total: float = 0.0


@dataclass
class SearchStats:
    """Counters collected by one solver or carver call."""

    starts_tried: int = 0
    steps: int = 0
    exhausted_starts: int = 0
    rejected_by: Optional[str] = None
    start_cells: List[Cell] = field(default_factory=list)
