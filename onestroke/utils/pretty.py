"""Pretty-print helpers for puzzle boards."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from ..core.constants import OBSTACLE_SYMBOL, PASSABLE_SYMBOL
from ..core.models import Cell

if TYPE_CHECKING:
    from ..engine.generator import PuzzleResult
    from ..engine.grid import Board


START_SYMBOL = "S"
GOAL_SYMBOL = "G"


def format_board(board: Board, path: Optional[Sequence[Cell]] = None, *, numbered: bool = False) -> str:
    """Render ``board`` with column/row headers.

    With a path, its endpoints are marked ``S`` and ``G``; ``numbered`` shows
    each passable cell's step index instead.
    """

    steps: Dict[Cell, int] = {}
    if path:
        steps = {cell: index for index, cell in enumerate(path)}
    width = 3 if numbered else 2
    size = board.size
    lines = ["    " + " ".join(f"{c:>{width}}" for c in range(size))]
    lines.append("    " + "-" * ((width + 1) * size - 1))
    for r in range(size):
        symbols = []
        for c in range(size):
            if board.is_obstacle(r, c):
                symbol = OBSTACLE_SYMBOL
            elif numbered and (r, c) in steps:
                symbol = str(steps[(r, c)] + 1)
            elif path and (r, c) == tuple(path[0]):
                symbol = START_SYMBOL
            elif path and (r, c) == tuple(path[-1]):
                symbol = GOAL_SYMBOL
            else:
                symbol = PASSABLE_SYMBOL
            symbols.append(f"{symbol:>{width}}")
        lines.append(f"{r:>2} | " + " ".join(symbols))
    return "\n".join(lines)


def pretty_print_board(
    board: Board,
    path: Optional[Sequence[Cell]] = None,
    *,
    label: str | None = None,
    numbered: bool = False,
    stream=None,
) -> None:
    stream = stream or sys.stdout
    if label:
        print(label, file=stream)
    print(format_board(board, path, numbered=numbered), file=stream)


def print_puzzle_stats(result: PuzzleResult, *, numbered: bool = False, stream=None) -> None:
    """Print board + score breakdown for a generated puzzle."""

    stream = stream or sys.stdout
    board = result.board
    print(format_board(board, result.path, numbered=numbered), file=stream)

    total_cells = board.size * board.size
    print(file=stream)
    print("--- Board ---", file=stream)
    print(f"  Size:          {board.size} x {board.size} ({total_cells} cells)", file=stream)
    print(f"  Obstacles:     {result.obstacle_count} ({result.obstacle_count / total_cells * 100:.0f}%)", file=stream)
    print(f"  Path length:   {len(result.path)}", file=stream)
    print(f"  Start / goal:  {result.path[0]} -> {result.path[-1]}", file=stream)

    score = result.score
    print(file=stream)
    print("--- Score ---", file=stream)
    print(f"  Total:         {score.total:.2f}", file=stream)
    print(f"  Branch edges:  {score.branch_edges}", file=stream)
    print(f"  Turns:         {score.turns}", file=stream)
    print(f"  Components:    {score.obstacle_components}", file=stream)
    print(f"  Centrality:    {score.centrality_bonus:+.2f}", file=stream)
    print(f"  Balance pen.:  {score.balance_penalty:.2f}", file=stream)
    print(f"  Run penalty:   {score.run_penalty}", file=stream)
    print(f"  Outer obst.:   {score.outer_obstacles}", file=stream)
    print(f"  Clump pairs:   {score.clump_pairs}", file=stream)

    print(file=stream)
    print(f"Difficulty: {result.difficulty:.1f}  Phase: {result.phase.value}  "
          f"Relax: {result.relax_level}  Time: {result.elapsed_ms:.0f}ms", file=stream)
    if result.seed is not None:
        print(f"Seed: {result.seed}", file=stream)
