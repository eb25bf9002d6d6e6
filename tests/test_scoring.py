import unittest

from onestroke.engine.grid import Board, serpentine_path
from onestroke.engine.scoring import (
    ScoreWeights,
    balance_penalty,
    branch_edges,
    centrality_bonus,
    clump_pairs,
    difficulty_rating,
    expected_ring_mean,
    obstacle_components,
    row_col_run_penalty,
    score_candidate,
    turn_count,
)


def _board_with(size, cells):
    board = Board.empty(size)
    for cell in cells:
        board.set_obstacle(*cell)
    return board


class PathMetricTests(unittest.TestCase):
    def test_turns_on_straight_and_serpentine(self) -> None:
        self.assertEqual(turn_count([(0, 0), (0, 1), (0, 2)]), 0)
        self.assertEqual(turn_count([(0, 0), (0, 1), (1, 1)]), 1)
        self.assertEqual(turn_count(serpentine_path(6)), 10)

    def test_branch_edges_of_serpentine(self) -> None:
        # 30 vertical adjacencies, 5 of them are path steps
        self.assertEqual(branch_edges(serpentine_path(6)), 25)
        self.assertEqual(branch_edges([(0, 0), (0, 1), (0, 2)]), 0)


class LayoutMetricTests(unittest.TestCase):
    def test_components_and_clumps(self) -> None:
        scattered = _board_with(6, [(1, 1), (1, 4), (4, 1), (4, 4)])
        clumped = _board_with(6, [(2, 2), (2, 3), (3, 2), (3, 3)])
        self.assertEqual(obstacle_components(scattered), 4)
        self.assertEqual(obstacle_components(clumped), 1)
        self.assertEqual(clump_pairs(scattered), 0)
        self.assertEqual(clump_pairs(clumped), 4)

    def test_centrality_prefers_inner_obstacles(self) -> None:
        inner = _board_with(6, [(2, 2), (3, 3)])
        border = _board_with(6, [(0, 2), (5, 3)])
        self.assertGreater(centrality_bonus(inner, 2), 0)
        self.assertLess(centrality_bonus(border, 2), 0)
        self.assertEqual(centrality_bonus(Board.empty(6), 0), 0)
        self.assertAlmostEqual(expected_ring_mean(3), 1 / 9)

    def test_balance_penalty_prefers_spread(self) -> None:
        spread = _board_with(6, [(1, 1), (1, 4), (4, 1), (4, 4)])
        corner = _board_with(6, [(0, 0), (0, 1), (1, 0), (1, 1)])
        self.assertLess(balance_penalty(spread), balance_penalty(corner))
        self.assertEqual(balance_penalty(Board.empty(6)), 0)

    def test_run_penalty_flags_dense_lines(self) -> None:
        band = _board_with(8, [(3, col) for col in range(7)])
        self.assertGreater(row_col_run_penalty(band), row_col_run_penalty(_board_with(8, [(3, 3)])))
        self.assertEqual(row_col_run_penalty(Board.empty(8)), 0)


class ScoreTests(unittest.TestCase):
    def test_dispersed_layout_scores_no_worse_on_dispersion_terms(self) -> None:
        path = serpentine_path(6)
        scattered = score_candidate(_board_with(6, [(1, 1), (1, 4), (4, 1), (4, 4)]), path)
        clumped = score_candidate(_board_with(6, [(2, 2), (2, 3), (3, 2), (3, 3)]), path)
        self.assertGreaterEqual(scattered.obstacle_components, clumped.obstacle_components)
        self.assertLessEqual(scattered.clump_pairs, clumped.clump_pairs)

    def test_total_uses_weights(self) -> None:
        board = Board.empty(6)
        path = serpentine_path(6)
        only_branches = ScoreWeights(
            branch=1.0, turn=0.0, components=0.0, centrality=0.0,
            balance=0.0, run=0.0, outer=0.0, clump=0.0,
        )
        breakdown = score_candidate(board, path, 0, only_branches)
        self.assertEqual(breakdown.total, breakdown.branch_edges)
        default = score_candidate(board, path, 0)
        self.assertAlmostEqual(default.total, 25 * 4.0 + 10 * 0.18)

    def test_outer_obstacles_lower_the_score(self) -> None:
        path = serpentine_path(6)
        inner = score_candidate(_board_with(6, [(2, 2)]), path, 1)
        outer = score_candidate(_board_with(6, [(0, 2)]), path, 1)
        self.assertEqual(outer.outer_obstacles, 1)
        self.assertGreater(inner.total, outer.total)


class DifficultyTests(unittest.TestCase):
    def test_empty_board_rating(self) -> None:
        self.assertAlmostEqual(difficulty_rating(Board.empty(6), serpentine_path(6)), 2.1)

    def test_rating_bounds(self) -> None:
        self.assertEqual(difficulty_rating(Board.empty(6), [(0, 0)]), 1.0)
        rating = difficulty_rating(Board.empty(10), serpentine_path(10))
        self.assertGreaterEqual(rating, 1.0)
        self.assertLessEqual(rating, 5.0)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
