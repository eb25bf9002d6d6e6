"""CLI entrypoint for the one-stroke puzzle generator."""

from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, List

from onestroke.core.exceptions import BoardLoadError, InvalidParametersError
from onestroke.engine.constraints import random_initial_obstacles
from onestroke.engine.generator import SOLVER_BACKENDS, generate_puzzle
from onestroke.engine.grid import Board
from onestroke.engine.scoring import difficulty_rating
from onestroke.engine.solver import HamiltonianSolver, solve_hamiltonian_cpsat
from onestroke.engine.validator import PathValidator
from onestroke.utils.logger import configure_logging, get_logger
from onestroke.utils.pretty import pretty_print_board, print_puzzle_stats


LOGGER = get_logger("onestroke.cli")


def parse_board_file(path: Path) -> List[str]:
    """Read board rows from a file. Blank lines and # comments are skipped.

    Rows themselves use ``#`` for obstacles, so only lines starting with
    ``# `` (hash then space) count as comments.
    """
    rows: List[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("# "):
            continue
        rows.append(line)
    return rows


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate or solve one-stroke grid puzzles",
    )
    parser.add_argument("--size", type=int, default=6, help="Board size n for an n x n grid")
    parser.add_argument(
        "--obstacles",
        type=int,
        default=None,
        help="Target obstacle count (default: random 10-20%% of the board)",
    )
    parser.add_argument(
        "--budget-ms",
        type=float,
        default=None,
        help="Time budget per generation run in milliseconds",
    )
    parser.add_argument(
        "--relax-level",
        type=int,
        choices=range(0, 4),
        default=0,
        help="Starting no-band relax level (0 strict, 3 loosest)",
    )
    parser.add_argument(
        "--global-limit-ms",
        type=float,
        default=8000,
        help="Overall limit for the escalation ladder in milliseconds",
    )
    parser.add_argument(
        "--no-escalation",
        action="store_true",
        help="Make a single generation run instead of relaxing on failure",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=SOLVER_BACKENDS,
        default="backtracking",
        help="Solver used while generating",
    )
    parser.add_argument(
        "--solve",
        type=Path,
        metavar="FILE",
        help="Solve a board file ('.' open, '#' obstacle) instead of generating",
    )
    parser.add_argument("--exact", action="store_true", help="Use the CP-SAT solver with --solve")
    parser.add_argument("--timeout", type=float, default=10.0, help="CP-SAT timeout in seconds")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--output", type=Path, help="Optional path to JSON output")
    parser.add_argument("--pretty", action="store_true", help="Print the board and stats to stderr")
    parser.add_argument("--numbered", action="store_true", help="Show step numbers when pretty printing")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def solve_board(args: argparse.Namespace, parser: argparse.ArgumentParser) -> Dict[str, Any]:
    try:
        board = Board.from_rows(parse_board_file(args.solve))
    except (OSError, BoardLoadError) as exc:
        parser.error(f"cannot load board: {exc}")

    if args.exact:
        path = solve_hamiltonian_cpsat(board, timeout=args.timeout, seed=args.seed)
    else:
        solver = HamiltonianSolver(rng=random.Random(args.seed))
        path = solver.solve(board)
        LOGGER.info(
            "Backtracking: %d starts, %d steps, rejected_by=%s",
            solver.stats.starts_tried, solver.stats.steps, solver.stats.rejected_by,
        )

    payload: Dict[str, Any] = {
        "size": board.size,
        "obstacle_count": board.obstacle_count,
        "board": board.to_rows(),
        "solved": path is not None,
        "path": [[row, col] for row, col in path] if path else None,
    }
    if path:
        payload["valid"] = PathValidator().validate(board, path).ok
        payload["difficulty"] = difficulty_rating(board, path)
    if args.pretty:
        pretty_print_board(board, path, numbered=args.numbered, stream=sys.stderr)
    return payload


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.exact and not args.solve:
        parser.error("--exact requires --solve FILE")

    if args.solve:
        payload = solve_board(args, parser)
    else:
        obstacles = args.obstacles
        if obstacles is None:
            obstacles = random_initial_obstacles(args.size, random.Random(args.seed))
            LOGGER.info("Using %d obstacles for a %dx%d board", obstacles, args.size, args.size)

        try:
            result = generate_puzzle(
                size=args.size,
                obstacle_count=obstacles,
                time_budget_ms=args.budget_ms,
                relax_level=args.relax_level,
                seed=args.seed,
                escalate=not args.no_escalation,
                global_limit_ms=args.global_limit_ms,
                solver_backend=args.backend,
            )
        except InvalidParametersError as exc:
            parser.error(str(exc))
        if result is None:
            payload = {"size": args.size, "obstacle_count": obstacles, "board": None, "path": None}
        else:
            payload = result.to_dict()
            if args.pretty:
                print_puzzle_stats(result, numbered=args.numbered, stream=sys.stderr)

    output_text = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(output_text, encoding="utf-8")
    else:
        print(output_text)


if __name__ == "__main__":  # pragma: no cover
    main()
