import random
import unittest
from unittest.mock import patch

from onestroke.engine.budget import SearchBudget
from onestroke.engine.grid import Board
from onestroke.engine.solver import HamiltonianSolver, SolverConfig, solve_hamiltonian_cpsat
from onestroke.engine.validator import PathValidator


# Two adjacent inner obstacles; solvable, e.g. by sweeping the two left
# columns first and finishing along the top.
HOLED_ROWS = [
    "......",
    "......",
    "..##..",
    "......",
    "......",
    "......",
]

# Four obstacles on the odd colour class: even 18, odd 14.
PARITY_ROWS = [
    "......",
    "..#...",
    ".#....",
    "....#.",
    "...#..",
    "......",
]


class HamiltonianSolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = PathValidator()

    def test_solves_empty_board(self) -> None:
        board = Board.empty(6)
        path = HamiltonianSolver(rng=random.Random(1)).solve(board)
        self.assertIsNotNone(path)
        self.assertTrue(self.validator.validate(board, path).ok)

    def test_solves_board_with_obstacles(self) -> None:
        board = Board.from_rows(HOLED_ROWS)
        solver = HamiltonianSolver(rng=random.Random(2))
        path = solver.solve(board)
        self.assertIsNotNone(path)
        self.assertEqual(len(path), 34)
        self.assertTrue(self.validator.validate(board, path).ok)
        self.assertGreater(solver.stats.steps, 0)
        self.assertIsNone(solver.stats.rejected_by)

    def test_different_seeds_give_valid_paths(self) -> None:
        board = Board.from_rows(HOLED_ROWS)
        paths = [HamiltonianSolver(rng=random.Random(seed)).solve(board) for seed in (11, 12, 13)]
        for path in paths:
            self.assertIsNotNone(path)
            self.assertTrue(self.validator.validate(board, path).ok)

    def test_parity_rejection_happens_before_search(self) -> None:
        board = Board.from_rows(PARITY_ROWS)
        solver = HamiltonianSolver(rng=random.Random(0))
        with patch.object(HamiltonianSolver, "_extend") as extend:
            self.assertIsNone(solver.solve(board))
        extend.assert_not_called()
        self.assertEqual(solver.stats.rejected_by, "parity")
        self.assertEqual(solver.stats.steps, 0)
        self.assertEqual(solver.stats.starts_tried, 0)

    def test_disconnected_board_is_rejected(self) -> None:
        board = Board.from_rows([
            "..#...",
            "..#...",
            "..#...",
            "..#...",
            "..#...",
            "..#...",
        ])
        solver = HamiltonianSolver()
        self.assertIsNone(solver.solve(board))
        self.assertIn(solver.stats.rejected_by, ("parity", "connectivity"))

    def test_iteration_cap_is_a_normal_failure(self) -> None:
        board = Board.empty(8)
        solver = HamiltonianSolver(SolverConfig(max_iterations=5, max_start_attempts=2), rng=random.Random(0))
        self.assertIsNone(solver.solve(board))
        self.assertEqual(solver.stats.starts_tried, 2)
        self.assertEqual(solver.stats.exhausted_starts, 2)

    def test_expired_budget_starts_nothing(self) -> None:
        solver = HamiltonianSolver()
        self.assertIsNone(solver.solve(Board.empty(6), SearchBudget(0)))
        self.assertEqual(solver.stats.starts_tried, 0)


class CpSatSolverTests(unittest.TestCase):
    def test_exact_solver_finds_valid_path(self) -> None:
        board = Board.from_rows(HOLED_ROWS)
        path = solve_hamiltonian_cpsat(board, timeout=10.0, seed=1, num_workers=1)
        self.assertIsNotNone(path)
        self.assertTrue(PathValidator().validate(board, path).ok)

    def test_exact_solver_on_odd_board(self) -> None:
        board = Board.empty(3)
        path = solve_hamiltonian_cpsat(board, timeout=5.0, num_workers=1)
        self.assertIsNotNone(path)
        self.assertEqual(len(path), 9)
        self.assertTrue(PathValidator().validate(board, path).ok)

    def test_exact_solver_skips_parity_failures(self) -> None:
        self.assertIsNone(solve_hamiltonian_cpsat(Board.from_rows(PARITY_ROWS), timeout=1.0))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
