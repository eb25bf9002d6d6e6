"""One-stroke grid puzzle engine.

A puzzle is a square board of open cells and obstacles that can be covered
by a single line visiting every open cell once, starting and ending on the
border. This package exposes the public API surface via:

- ``onestroke.engine.generator.PuzzleGenerator`` and ``generate_puzzle``:
  anytime generation under a time budget.
- ``onestroke.engine.solver.HamiltonianSolver``: covering-path search for a
  given board, plus ``solve_hamiltonian_cpsat`` for exact solving.
- ``onestroke.engine.grid.Board``: board representation and loading.
"""

from .engine.generator import GeneratorConfig, PuzzleGenerator, PuzzleResult, generate_puzzle
from .engine.grid import Board
from .engine.solver import HamiltonianSolver, SolverConfig, solve_hamiltonian_cpsat

__all__ = [
    "Board",
    "GeneratorConfig",
    "HamiltonianSolver",
    "PuzzleGenerator",
    "PuzzleResult",
    "SolverConfig",
    "generate_puzzle",
    "solve_hamiltonian_cpsat",
]

__version__ = "0.1.0"
