import threading
import unittest
from unittest.mock import MagicMock

from onestroke.core.constants import GenerationPhase
from onestroke.core.exceptions import InvalidParametersError
from onestroke.engine.constraints import board_acceptable, connected, no_band_constraints, parity_check
from onestroke.engine.generator import (
    GeneratorConfig,
    PuzzleGenerator,
    escalation_rungs,
    generate_puzzle,
)
from onestroke.engine.validator import PathValidator


class GeneratorTests(unittest.TestCase):
    def assertValidResult(self, result, obstacles: int) -> None:
        self.assertIsNotNone(result)
        board, path = result.board, result.path
        self.assertEqual(board.obstacle_count, obstacles)
        self.assertEqual(len(path), board.size * board.size - obstacles)
        self.assertTrue(board.is_outer(*path[0]))
        self.assertTrue(board.is_outer(*path[-1]))
        self.assertNotEqual(path[0], path[-1])
        self.assertTrue(PathValidator().validate(board, path).ok)
        self.assertTrue(parity_check(board))
        self.assertTrue(connected(board))
        self.assertGreaterEqual(result.difficulty, 1.0)
        self.assertLessEqual(result.difficulty, 5.0)

    def test_small_board_with_four_obstacles(self) -> None:
        config = GeneratorConfig(size=6, obstacle_count=4, time_budget_ms=2000, seed=7)
        result = PuzzleGenerator(config).generate()
        self.assertValidResult(result, 4)
        self.assertEqual(len(result.path), 32)

    def test_no_obstacles_is_trivial(self) -> None:
        config = GeneratorConfig(size=6, obstacle_count=0, seed=1)
        result = PuzzleGenerator(config).generate()
        self.assertValidResult(result, 0)
        self.assertEqual(len(result.path), 36)
        self.assertEqual(result.phase, GenerationPhase.TRIVIAL)

    def test_infeasible_count_skips_search(self) -> None:
        too_many = no_band_constraints(10, 81, 0).max_obstacles_no_band + 1
        solver = MagicMock()
        carver = MagicMock()
        config = GeneratorConfig(size=10, obstacle_count=too_many, seed=3)
        result = PuzzleGenerator(config, solver=solver, carver=carver).generate()
        self.assertIsNone(result)
        solver.solve.assert_not_called()
        carver.carve.assert_not_called()

    def test_zero_budget_falls_back_to_serpentine(self) -> None:
        config = GeneratorConfig(size=6, obstacle_count=6, time_budget_ms=0, seed=5)
        result = PuzzleGenerator(config).generate()
        self.assertValidResult(result, 6)
        self.assertEqual(result.phase, GenerationPhase.SERPENTINE)

    def test_no_last_resort_returns_none(self) -> None:
        config = GeneratorConfig(size=6, obstacle_count=6, time_budget_ms=0, allow_last_resort=False)
        self.assertIsNone(PuzzleGenerator(config).generate())

    def test_failing_searches_reach_serpentine_and_yield(self) -> None:
        solver = MagicMock()
        solver.solve.return_value = None
        carver = MagicMock()
        carver.carve.return_value = None
        on_yield = MagicMock()
        config = GeneratorConfig(size=6, obstacle_count=4, time_budget_ms=300, seed=2)
        result = PuzzleGenerator(config, solver=solver, carver=carver).generate(on_yield=on_yield)
        self.assertValidResult(result, 4)
        self.assertEqual(result.phase, GenerationPhase.SERPENTINE)
        self.assertTrue(solver.solve.called)
        self.assertTrue(carver.carve.called)
        self.assertGreater(on_yield.call_count, 0)

    def test_searches_share_step_cadence_and_limits(self) -> None:
        solver = MagicMock()
        solver.solve.return_value = None
        carver = MagicMock()
        carver.carve.return_value = None
        config = GeneratorConfig(size=6, obstacle_count=4, time_budget_ms=300, search_yield_steps=17, seed=2)
        PuzzleGenerator(config, solver=solver, carver=carver).generate()
        self.assertEqual(solver.solve.call_args[0][1].yield_interval, 17)
        size, length, budget, limits = carver.carve.call_args[0]
        self.assertEqual((size, length), (6, 32))
        self.assertEqual(budget.yield_interval, 17)
        self.assertEqual(limits, no_band_constraints(6, 4, 0))

    def test_carving_phase_used_when_solver_fails(self) -> None:
        solver = MagicMock()
        solver.solve.return_value = None
        config = GeneratorConfig(size=6, obstacle_count=4, time_budget_ms=1500, solver_share=0.2, seed=8)
        result = PuzzleGenerator(config, solver=solver).generate()
        self.assertValidResult(result, 4)
        self.assertIn(result.phase, (GenerationPhase.CARVING, GenerationPhase.SERPENTINE))

    def test_cancel_event_stops_search(self) -> None:
        cancel = threading.Event()
        cancel.set()
        solver = MagicMock()
        config = GeneratorConfig(size=6, obstacle_count=4, time_budget_ms=10_000, seed=4)
        result = PuzzleGenerator(config, solver=solver).generate(cancel_event=cancel)
        solver.solve.assert_not_called()
        self.assertEqual(result.phase, GenerationPhase.SERPENTINE)

    def test_cpsat_backend(self) -> None:
        config = GeneratorConfig(
            size=6, obstacle_count=4, time_budget_ms=3000, seed=3,
            solver_backend="cpsat", target_score=0.0,
        )
        result = PuzzleGenerator(config).generate()
        self.assertValidResult(result, 4)

    def test_target_score_stops_early(self) -> None:
        config = GeneratorConfig(size=6, obstacle_count=4, time_budget_ms=5000, seed=9, target_score=-1e9)
        result = PuzzleGenerator(config).generate()
        self.assertValidResult(result, 4)
        self.assertLess(result.elapsed_ms, 5000)

    def test_result_to_dict(self) -> None:
        result = PuzzleGenerator(GeneratorConfig(size=6, obstacle_count=0)).generate()
        payload = result.to_dict()
        self.assertEqual(payload["size"], 6)
        self.assertEqual(payload["phase"], "trivial")
        self.assertEqual(len(payload["board"]), 6)
        self.assertEqual(len(payload["path"]), 36)
        self.assertIn("total", payload["score"])


class GeneratorConfigTests(unittest.TestCase):
    def test_rejects_bad_parameters(self) -> None:
        bad = [
            dict(size=2, obstacle_count=0),
            dict(size=6, obstacle_count=-1),
            dict(size=6, obstacle_count=4, relax_level=4),
            dict(size=6, obstacle_count=4, solver_backend="annealing"),
            dict(size=6, obstacle_count=4, solver_share=0),
            dict(size=6, obstacle_count=4, search_yield_steps=0),
        ]
        for kwargs in bad:
            with self.assertRaises(InvalidParametersError):
                GeneratorConfig(**kwargs).validate()

    def test_generate_validates(self) -> None:
        with self.assertRaises(InvalidParametersError):
            PuzzleGenerator(GeneratorConfig(size=6, obstacle_count=4, relax_level=7)).generate()


class EscalationTests(unittest.TestCase):
    def test_rungs(self) -> None:
        rungs = escalation_rungs(6, 4)
        self.assertEqual(rungs, [
            (4, 0, 1000),
            (4, 0, 1500),
            (4, 1, 1000),
            (4, 2, 1000),
            (2, 2, 500),
        ])

    def test_rungs_reduce_toward_floor(self) -> None:
        rungs = escalation_rungs(10, 20)
        reduced = [obstacles for obstacles, _, _ in rungs[4:]]
        self.assertEqual(reduced, [18, 16, 14, 12, 10, 8])
        self.assertEqual({relax for _, relax, _ in rungs[4:]}, {2})

    def test_reduced_rungs_never_tighten_relax_level(self) -> None:
        rungs = escalation_rungs(8, 14, relax_level=3)
        self.assertEqual([relax for _, relax, _ in rungs], [3] * len(rungs))

    def test_generate_puzzle_returns_valid_result(self) -> None:
        result = generate_puzzle(6, 5, seed=11, global_limit_ms=4000)
        self.assertIsNotNone(result)
        self.assertLessEqual(result.obstacle_count, 5)
        self.assertTrue(PathValidator().validate(result.board, result.path).ok)

    def test_large_board_avoids_serpentine_fallback(self) -> None:
        result = generate_puzzle(10, 12, seed=5, global_limit_ms=6000)
        self.assertIsNotNone(result)
        self.assertNotEqual(result.phase, GenerationPhase.SERPENTINE)
        self.assertEqual(result.obstacle_count, 12)
        self.assertTrue(board_acceptable(result.board, result.obstacle_count, result.relax_level))
        self.assertTrue(PathValidator().validate(result.board, result.path).ok)

    def test_generate_puzzle_clamps_obstacles(self) -> None:
        result = generate_puzzle(6, 500, seed=1, global_limit_ms=300)
        self.assertIsNotNone(result)
        self.assertLessEqual(result.obstacle_count, 24)
        self.assertTrue(PathValidator().validate(result.board, result.path).ok)

    def test_single_run_without_escalation(self) -> None:
        result = generate_puzzle(6, 0, escalate=False)
        self.assertEqual(result.phase, GenerationPhase.TRIVIAL)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
