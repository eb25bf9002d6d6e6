import random
import unittest

from onestroke.engine.constraints import count_outer_obstacles, no_band_constraints, parity_check, parity_imbalance
from onestroke.engine.grid import Board
from onestroke.engine.placement import (
    STRATEGIES,
    CentralRingStrategy,
    CheckerboardStrategy,
    DegreeCheckedStrategy,
    UniformRandomStrategy,
    get_strategy,
)


class RegistryTests(unittest.TestCase):
    def test_registry_names(self) -> None:
        self.assertEqual(
            set(STRATEGIES), {"central_ring", "checkerboard", "uniform_random", "degree_checked"}
        )
        self.assertIsInstance(get_strategy("checkerboard"), CheckerboardStrategy)

    def test_unknown_strategy(self) -> None:
        with self.assertRaises(KeyError) as ctx:
            get_strategy("spiral")
        self.assertIn("degree_checked", str(ctx.exception))


class SimpleStrategyTests(unittest.TestCase):
    def test_central_ring_fills_innermost_ring_first(self) -> None:
        board = Board.empty(6)
        placed = CentralRingStrategy().place(board, 4, random.Random(0))
        self.assertEqual(placed, 4)
        self.assertEqual(sorted(board.obstacle_cells()), [(2, 2), (2, 3), (3, 2), (3, 3)])

    def test_central_ring_keeps_outer_reserve(self) -> None:
        board = Board.empty(6)
        placed = CentralRingStrategy().place(board, 36, random.Random(1))
        self.assertEqual(placed, 36 - 4)
        self.assertEqual(len(board.outer_passable_cells()), 4)

    def test_checkerboard_balances_colour_classes(self) -> None:
        for target in range(2, 9):
            board = Board.empty(6)
            placed = CheckerboardStrategy().place(board, target, random.Random(target))
            self.assertEqual(placed, target)
            self.assertTrue(parity_check(board), f"imbalance {parity_imbalance(board)} for {target}")

    def test_checkerboard_on_odd_board(self) -> None:
        for target in range(3, 9):
            board = Board.empty(7)
            CheckerboardStrategy().place(board, target, random.Random(target))
            self.assertTrue(parity_check(board))

    def test_uniform_random_places_target(self) -> None:
        board = Board.empty(8)
        placed = UniformRandomStrategy().place(board, 9, random.Random(2))
        self.assertEqual(placed, 9)
        self.assertEqual(board.obstacle_count, 9)


class DegreeCheckedStrategyTests(unittest.TestCase):
    def test_never_strands_a_passable_cell(self) -> None:
        for seed in range(10):
            board = Board.empty(6)
            DegreeCheckedStrategy().place(board, 8, random.Random(seed))
            for row, col in board.passable_cells():
                degree = len(board.passable_neighbors(row, col))
                self.assertGreaterEqual(degree, 1)
                if not board.is_outer(row, col):
                    self.assertGreaterEqual(degree, 2)

    def test_exact_count_and_balance_for_small_targets(self) -> None:
        for seed in range(5):
            board = Board.empty(6)
            placed = DegreeCheckedStrategy().place(board, 4, random.Random(seed))
            self.assertEqual(placed, 4)
            self.assertTrue(parity_check(board))

    def test_respects_outer_maximum(self) -> None:
        limits = no_band_constraints(6, 6, 0)
        for seed in range(5):
            board = Board.empty(6)
            DegreeCheckedStrategy().place(board, 6, random.Random(seed), limits)
            self.assertLessEqual(count_outer_obstacles(board), limits.outer_max)

    def test_stops_short_when_nothing_fits(self) -> None:
        board = Board.empty(3)
        placed = DegreeCheckedStrategy().place(board, 9, random.Random(0))
        self.assertLess(placed, 9)
        self.assertEqual(board.obstacle_count, placed)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
