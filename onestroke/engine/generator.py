"""Puzzle generation orchestration.

Three phases share one wall-clock budget:
  1. Solver: place obstacles, filter cheaply, search for a covering path.
  2. Carving: carve a path of the needed length and keep the board it leaves.
  3. Serpentine: slice a boustrophedon walk as a last resort.

:func:`generate_puzzle` wraps the generator in the escalation ladder
(bigger budgets, relaxed constraints, fewer obstacles).
"""

from __future__ import annotations

import math
import random
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.constants import MAX_BOARD_SIZE, MAX_RELAX_LEVEL, MIN_BOARD_SIZE, GenerationPhase
from ..core.exceptions import InvalidParametersError
from ..core.models import Path, ScoreBreakdown
from ..utils.logger import get_logger
from .budget import SearchBudget
from .carving import CarverConfig, PathCarver
from .constraints import board_acceptable, connected, is_feasible, no_band_constraints, parity_check
from .grid import Board, pick_outer_to_outer_segment, serpentine_path
from .placement import PlacementStrategy, get_strategy
from .scoring import ScoreWeights, difficulty_rating, score_candidate
from .solver import HamiltonianSolver, SolverConfig, solve_hamiltonian_cpsat
from .validator import PathValidator


LOGGER = get_logger(__name__)

SOLVER_BACKENDS = ("backtracking", "cpsat")
SECONDARY_STRATEGIES = ("central_ring", "checkerboard", "uniform_random")


@dataclass
class GeneratorConfig:
    size: int
    obstacle_count: int
    time_budget_ms: float = 2000
    relax_level: int = 0
    seed: Optional[int] = None
    # Share of the budget given to the solver phase before carving starts
    solver_share: float = 0.6
    yield_every: int = 15
    # Search steps between host yields inside a single solve or carve
    search_yield_steps: int = 200
    max_attempts: int = 3000
    # Every n-th solver attempt uses a secondary placement strategy
    secondary_every: int = 3
    target_score: Optional[float] = None
    allow_last_resort: bool = True
    solver_backend: str = "backtracking"
    solver: SolverConfig = field(default_factory=SolverConfig)
    carver: CarverConfig = field(default_factory=CarverConfig)
    weights: ScoreWeights = field(default_factory=ScoreWeights)

    def validate(self) -> None:
        if not MIN_BOARD_SIZE <= self.size <= MAX_BOARD_SIZE:
            raise InvalidParametersError(
                f"Board size {self.size} outside supported range {MIN_BOARD_SIZE}-{MAX_BOARD_SIZE}"
            )
        if not 0 <= self.relax_level <= MAX_RELAX_LEVEL:
            raise InvalidParametersError(f"Relax level must be 0-{MAX_RELAX_LEVEL}, got {self.relax_level}")
        if self.obstacle_count < 0:
            raise InvalidParametersError(f"Obstacle count must be non-negative, got {self.obstacle_count}")
        if self.time_budget_ms < 0:
            raise InvalidParametersError("Time budget must be non-negative")
        if not 0 < self.solver_share <= 1:
            raise InvalidParametersError("solver_share must be in (0, 1]")
        if min(self.yield_every, self.search_yield_steps, self.max_attempts) < 1:
            raise InvalidParametersError("yield_every, search_yield_steps and max_attempts must be positive")
        if self.solver_backend not in SOLVER_BACKENDS:
            raise InvalidParametersError(
                f"Unknown solver backend '{self.solver_backend}'. Available: {', '.join(SOLVER_BACKENDS)}"
            )


@dataclass
class PuzzleResult:
    board: Board
    path: Path
    score: ScoreBreakdown
    phase: GenerationPhase
    relax_level: int
    obstacle_count: int
    difficulty: float
    elapsed_ms: float = 0.0
    seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.board.size,
            "obstacle_count": self.obstacle_count,
            "relax_level": self.relax_level,
            "phase": self.phase.value,
            "score": asdict(self.score),
            "difficulty": self.difficulty,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "seed": self.seed,
            "board": self.board.to_rows(),
            "path": [[row, col] for row, col in self.path],
        }


class PuzzleGenerator:
    """Anytime generator: keeps the best-scoring valid candidate within the budget."""

    def __init__(
        self,
        config: GeneratorConfig,
        solver: Optional[HamiltonianSolver] = None,
        carver: Optional[PathCarver] = None,
    ) -> None:
        self.config = config
        self.rng = random.Random(config.seed)
        self.solver = solver or HamiltonianSolver(config.solver, rng=random.Random(self.rng.random()))
        self.carver = carver or PathCarver(config.carver, rng=random.Random(self.rng.random()))
        self.validator = PathValidator()
        self.primary: PlacementStrategy = get_strategy("degree_checked")
        self.secondary: List[PlacementStrategy] = [get_strategy(name) for name in SECONDARY_STRATEGIES]

    # ------------------------------------------------------------------
    # Public entrypoint
    # ------------------------------------------------------------------
    def generate(
        self,
        on_yield: Optional[Callable[[], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[PuzzleResult]:
        config = self.config
        config.validate()
        budget = SearchBudget(
            config.time_budget_ms,
            yield_interval=config.search_yield_steps,
            on_yield=on_yield,
            cancel_event=cancel_event,
        )

        if not is_feasible(config.size, config.obstacle_count, config.relax_level):
            LOGGER.warning(
                "%d obstacles on a %dx%d board are infeasible at relax level %d; skipping search",
                config.obstacle_count, config.size, config.size, config.relax_level,
            )
            return None

        if config.obstacle_count == 0:
            return self._trivial(budget)

        LOGGER.info(
            "Generating %dx%d puzzle with %d obstacles (relax=%d, budget=%.0fms)",
            config.size, config.size, config.obstacle_count, config.relax_level, config.time_budget_ms,
        )
        best = self._solver_phase(budget.slice(config.time_budget_ms * config.solver_share))
        if best is None and not budget.expired():
            LOGGER.info("Solver phase found nothing; carving paths for %.0fms", budget.remaining_ms())
            best = self._carving_phase(budget)
        if best is None and config.allow_last_resort:
            LOGGER.warning("Falling back to a serpentine segment")
            best = self._serpentine_phase(budget)

        if best is None:
            LOGGER.info("No puzzle found within %.0fms", budget.elapsed_ms())
            return None
        best.elapsed_ms = budget.elapsed_ms()
        LOGGER.info(
            "Puzzle ready via %s phase: score %.2f, difficulty %.1f, %.0fms",
            best.phase.value, best.score.total, best.difficulty, best.elapsed_ms,
        )
        return best

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def _trivial(self, budget: SearchBudget) -> Optional[PuzzleResult]:
        board = Board.empty(self.config.size)
        result = self._consider(board, serpentine_path(board.size), GenerationPhase.TRIVIAL, None)
        if result is not None:
            result.elapsed_ms = budget.elapsed_ms()
            LOGGER.info("Empty %dx%d board: serpentine covers all cells", board.size, board.size)
        return result

    def _solver_phase(self, budget: SearchBudget) -> Optional[PuzzleResult]:
        config = self.config
        limits = no_band_constraints(config.size, config.obstacle_count, config.relax_level)
        best: Optional[PuzzleResult] = None
        rejected: Dict[str, int] = {}

        for attempt in range(config.max_attempts):
            if budget.expired():
                break
            if attempt and attempt % config.yield_every == 0:
                budget.pause()

            board = Board.empty(config.size)
            strategy = self._strategy_for(attempt)
            placed = strategy.place(board, config.obstacle_count, self.rng, limits)
            reason = self._reject_reason(board, placed)
            if reason is not None:
                rejected[reason] = rejected.get(reason, 0) + 1
                LOGGER.debug("Attempt %d (%s) rejected: %s", attempt, strategy.name, reason)
                continue

            path = self._solve(board, budget)
            if path is None:
                rejected["unsolved"] = rejected.get("unsolved", 0) + 1
                continue
            best = self._consider(board, path, GenerationPhase.SOLVER, best)
            if self._target_reached(best):
                break

        LOGGER.debug("Solver phase rejections: %s", rejected)
        return best

    def _carving_phase(self, budget: SearchBudget) -> Optional[PuzzleResult]:
        config = self.config
        length = config.size * config.size - config.obstacle_count
        limits = no_band_constraints(config.size, config.obstacle_count, config.relax_level)
        best: Optional[PuzzleResult] = None

        for attempt in range(config.max_attempts):
            if budget.expired():
                break
            if attempt and attempt % config.yield_every == 0:
                budget.pause()
            path = self.carver.carve(config.size, length, budget, limits)
            if path is None:
                continue
            board = Board.from_path(config.size, path)
            if not board_acceptable(board, config.obstacle_count, config.relax_level):
                LOGGER.debug("Carved board %d rejected by no-band limits", attempt)
                continue
            best = self._consider(board, path, GenerationPhase.CARVING, best)
            if self._target_reached(best):
                break
        return best

    def _serpentine_phase(self, budget: SearchBudget) -> Optional[PuzzleResult]:
        size = self.config.size
        length = size * size - self.config.obstacle_count
        segment = pick_outer_to_outer_segment(serpentine_path(size), length, size, self.rng)
        if segment is None:
            return None
        return self._consider(Board.from_path(size, segment), segment, GenerationPhase.SERPENTINE, None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _strategy_for(self, attempt: int) -> PlacementStrategy:
        every = self.config.secondary_every
        if every and attempt % every == every - 1:
            return self.secondary[(attempt // every) % len(self.secondary)]
        return self.primary

    def _reject_reason(self, board: Board, placed: int) -> Optional[str]:
        config = self.config
        if placed != config.obstacle_count:
            return "short"
        if not board_acceptable(board, config.obstacle_count, config.relax_level):
            return "no_band"
        if not parity_check(board):
            return "parity"
        if not connected(board):
            return "connectivity"
        return None

    def _solve(self, board: Board, budget: SearchBudget) -> Optional[Path]:
        if self.config.solver_backend == "cpsat":
            timeout = max(0.05, budget.remaining_ms() / 1000.0)
            return solve_hamiltonian_cpsat(board, timeout=timeout, seed=self.rng.randint(0, 2**31 - 1))
        return self.solver.solve(board, budget)

    def _consider(
        self,
        board: Board,
        path: Path,
        phase: GenerationPhase,
        best: Optional[PuzzleResult],
    ) -> Optional[PuzzleResult]:
        validation = self.validator.validate(board, path)
        if not validation.ok:
            return best
        score = score_candidate(board, path, board.obstacle_count, self.config.weights)
        if best is not None and score.total <= best.score.total:
            return best
        return PuzzleResult(
            board=board,
            path=list(path),
            score=score,
            phase=phase,
            relax_level=self.config.relax_level,
            obstacle_count=board.obstacle_count,
            difficulty=difficulty_rating(board, path),
            seed=self.config.seed,
        )

    def _target_reached(self, best: Optional[PuzzleResult]) -> bool:
        target = self.config.target_score
        return best is not None and target is not None and best.score.total >= target


# ----------------------------------------------------------------------
# Escalation ladder
# ----------------------------------------------------------------------
def escalation_rungs(
    size: int,
    obstacle_count: int,
    relax_level: int = 0,
    base_budget_ms: Optional[float] = None,
) -> List[Tuple[int, int, float]]:
    """(obstacles, relax level, budget ms) steps tried in order by :func:`generate_puzzle`."""

    cells = size * size
    base = base_budget_ms if base_budget_ms is not None else max(500, 1000 + (size - 6) * 500)
    rungs: List[Tuple[int, int, float]] = [
        (obstacle_count, relax_level, min(2000, base)),
        (obstacle_count, relax_level, min(4000, base * 1.5)),
    ]
    for relax in range(relax_level + 1, 3):
        rungs.append((obstacle_count, relax, min(2000, base)))
    # Reduced counts keep the loosest relax level already tried
    loosest = max(relax_level, 2)
    floor_obstacles = math.floor(cells * 0.08)
    reduced = obstacle_count
    while reduced > floor_obstacles:
        reduced = max(floor_obstacles, reduced - 2)
        rungs.append((reduced, loosest, min(1500, base * 0.5)))
    return rungs


def generate_puzzle(
    size: int,
    obstacle_count: int,
    time_budget_ms: Optional[float] = None,
    relax_level: int = 0,
    seed: Optional[int] = None,
    escalate: bool = True,
    global_limit_ms: float = 8000,
    allow_last_resort: bool = True,
    solver_backend: str = "backtracking",
    on_yield: Optional[Callable[[], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[PuzzleResult]:
    """Generate a puzzle, loosening the request until something is found.

    The obstacle count is first clamped to what the board can hold. Without
    ``escalate`` a single generator run is made with the given settings.
    """
    cells = size * size
    ceiling = min(cells - 2, no_band_constraints(size, max(obstacle_count, 0), relax_level).max_obstacles_no_band)
    target = max(0, min(obstacle_count, ceiling))
    if target != obstacle_count:
        LOGGER.info("Obstacle count clamped from %d to %d", obstacle_count, target)

    if not escalate:
        config = GeneratorConfig(
            size=size,
            obstacle_count=target,
            time_budget_ms=time_budget_ms if time_budget_ms is not None else 2000,
            relax_level=relax_level,
            seed=seed,
            allow_last_resort=allow_last_resort,
            solver_backend=solver_backend,
        )
        return PuzzleGenerator(config).generate(on_yield, cancel_event)

    rng = random.Random(seed)
    overall = SearchBudget(global_limit_ms, on_yield=on_yield, cancel_event=cancel_event)
    rungs = escalation_rungs(size, target, relax_level, time_budget_ms)
    for index, (obstacles, relax, budget_ms) in enumerate(rungs, start=1):
        if overall.expired():
            LOGGER.warning("Global limit of %.0fms reached after %d rungs", global_limit_ms, index - 1)
            break
        LOGGER.info("Escalation rung %d/%d: obstacles=%d relax=%d", index, len(rungs), obstacles, relax)
        config = GeneratorConfig(
            size=size,
            obstacle_count=obstacles,
            time_budget_ms=min(budget_ms, overall.remaining_ms()),
            relax_level=relax,
            seed=rng.randint(0, 1_000_000),
            allow_last_resort=False,
            solver_backend=solver_backend,
        )
        result = PuzzleGenerator(config).generate(on_yield, cancel_event)
        if result is not None:
            return result

    if not allow_last_resort:
        return None
    obstacles, relax, _ = rungs[-1]
    config = GeneratorConfig(
        size=size,
        obstacle_count=obstacles,
        time_budget_ms=0,
        relax_level=relax,
        seed=rng.randint(0, 1_000_000),
        allow_last_resort=True,
    )
    return PuzzleGenerator(config).generate(on_yield, cancel_event)
