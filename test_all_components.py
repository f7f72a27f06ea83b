#!/usr/bin/env python3
"""
Repairman simulator test suite.
Tests each component independently: sampling, event queue, entities,
statistics, configuration and analysis.
"""

import math
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import numpy as np

from repairsim.entities import Machine, Repairman, SimulationState, StatisticsAccumulator
from repairsim.errors import InvalidArgumentError, SequenceExhaustedError
from repairsim.events import EmptyQueueError, Event, EventQueue, EventType
from repairsim.processes import ExponentialSampler, FixedSequenceSampler


class _ConstantRng:
    """Stands in for numpy's Generator: random() always returns the same draw."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


class TestSampler(unittest.TestCase):
    """Test exponential and fixed-sequence interval samplers."""

    def test_exponential_mean(self):
        sampler = ExponentialSampler(seed=42)
        draws = [sampler.sample(2.0) for _ in range(20000)]
        self.assertTrue(all(d >= 0 for d in draws))
        self.assertAlmostEqual(float(np.mean(draws)), 0.5, delta=0.02)

    def test_zero_uniform_draw_never_gives_infinity(self):
        """numpy can return 0.0; the sampler maps it to U = 1 and a zero interval."""
        sampler = ExponentialSampler(rng=_ConstantRng(0.0))
        self.assertEqual(sampler.uniform(), 1.0)
        value = sampler.sample(0.4)
        self.assertTrue(math.isfinite(value))
        self.assertEqual(value, 0.0)

    def test_uniform_stays_in_half_open_interval(self):
        sampler = ExponentialSampler(seed=1)
        for _ in range(1000):
            u = sampler.uniform()
            self.assertGreater(u, 0.0)
            self.assertLessEqual(u, 1.0)

    def test_formula(self):
        sampler = ExponentialSampler(rng=_ConstantRng(0.75))  # U = 0.25
        self.assertAlmostEqual(sampler.sample(2.0), -math.log(0.25) / 2.0)

    def test_invalid_rate(self):
        sampler = ExponentialSampler(seed=0)
        for rate in (0, 0.0, -1.0, float("inf"), float("nan")):
            with self.assertRaises(InvalidArgumentError):
                sampler.sample(rate)

    def test_same_seed_same_draws(self):
        a = ExponentialSampler(seed=7)
        b = ExponentialSampler(seed=7)
        self.assertEqual([a.sample(1.0) for _ in range(10)], [b.sample(1.0) for _ in range(10)])

    def test_fixed_sequence_repeats_last(self):
        sampler = FixedSequenceSampler([2.0, 3.0])
        self.assertEqual([sampler.sample(1.0) for _ in range(4)], [2.0, 3.0, 3.0, 3.0])

    def test_fixed_sequence_exhausted(self):
        sampler = FixedSequenceSampler([1.0], repeat_last=False)
        self.assertEqual(sampler.sample(1.0), 1.0)
        with self.assertRaises(SequenceExhaustedError):
            sampler.sample(1.0)

    def test_fixed_sequence_validation(self):
        with self.assertRaises(InvalidArgumentError):
            FixedSequenceSampler([])
        with self.assertRaises(InvalidArgumentError):
            FixedSequenceSampler([1.0, -0.5])
        with self.assertRaises(InvalidArgumentError):
            FixedSequenceSampler([1.0]).sample(0.0)

        print("✅ Sampler tests PASSED")


class TestEventQueue(unittest.TestCase):
    """Test event ordering and tie-breaking."""

    def _failure(self, machine_id, t):
        m = Machine(id=machine_id, next_failure_time=t)
        return Event.machine_failure(m)

    def test_pops_in_time_order(self):
        q = EventQueue()
        for i, t in enumerate([5.0, 1.0, 3.0, 2.0, 4.0]):
            q.push(self._failure(i, t))
        times = [q.pop_min().time for _ in range(5)]
        self.assertEqual(times, [1.0, 2.0, 3.0, 4.0, 5.0])
        self.assertEqual(len(q), 0)

    def test_equal_times_pop_in_insertion_order(self):
        q = EventQueue()
        r = Repairman(id=9, next_fix_time=1.0)
        q.push(self._failure(0, 1.0))
        q.push(Event.repair_completion(r))
        q.push(self._failure(1, 1.0))
        popped = [q.pop_min() for _ in range(3)]
        self.assertEqual(
            [(ev.event_type, ev.entity_id) for ev in popped],
            [
                (EventType.MACHINE_FAILURE, 0),
                (EventType.REPAIR_COMPLETION, 9),
                (EventType.MACHINE_FAILURE, 1),
            ],
        )

    def test_empty_queue(self):
        q = EventQueue()
        self.assertFalse(q)
        with self.assertRaises(EmptyQueueError):
            q.pop_min()
        with self.assertRaises(EmptyQueueError):
            q.peek()

    def test_iteration_is_a_snapshot(self):
        q = EventQueue()
        q.push(self._failure(0, 2.0))
        q.push(self._failure(1, 1.0))
        self.assertEqual([ev.entity_id for ev in q], [1, 0])
        self.assertEqual(len(q), 2)
        self.assertEqual(q.peek().entity_id, 1)

    def test_event_time_fixed_at_creation(self):
        m = Machine(id=0, next_failure_time=3.0)
        ev = Event.machine_failure(m)
        m.next_failure_time = 10.0
        self.assertEqual(ev.time, 3.0)

    def test_pending_for(self):
        q = EventQueue()
        m = Machine(id=0, next_failure_time=1.0)
        other = Machine(id=1, next_failure_time=2.0)
        q.push(Event.machine_failure(m))
        self.assertEqual(q.pending_for(m), 1)
        self.assertEqual(q.pending_for(other), 0)

        print("✅ Event queue tests PASSED")


class TestEntities(unittest.TestCase):
    """Test machine and repairman state."""

    def test_machine_fail_and_fix(self):
        m = Machine(id=0)
        self.assertTrue(m.is_operational)
        m.fail()
        self.assertTrue(m.broken)
        self.assertEqual(m.failures, 1)
        m.fixed()
        self.assertFalse(m.broken)

    def test_repairman_assignment(self):
        m = Machine(id=3)
        r = Repairman(id=0)
        self.assertFalse(r.is_busy)
        r.assign(m, 4.5)
        self.assertTrue(r.is_busy)
        self.assertEqual(r.next_fix_time, 4.5)
        self.assertIs(r.release(), m)
        self.assertFalse(r.is_busy)
        self.assertEqual(r.repairs_completed, 1)

    def test_release_idle_repairman_fails(self):
        with self.assertRaises(RuntimeError):
            Repairman(id=0).release()

    def test_entities_compare_by_identity(self):
        self.assertNotEqual(Machine(id=0), Machine(id=0))

    def test_state_requires_statistics(self):
        with self.assertRaises(TypeError):
            SimulationState()
        state = SimulationState(stats=StatisticsAccumulator(machine_count=2, repairman_count=1))
        self.assertEqual(state.stats.state_time.shape, (3,))
        self.assertEqual(state.current_time, 0.0)


class TestStatistics(unittest.TestCase):
    """Test time-weighted state accumulation."""

    def test_probabilities_and_averages(self):
        acc = StatisticsAccumulator(machine_count=2, repairman_count=1)
        acc.record(2, 0, 3.0)
        acc.record(1, 1, 1.0)
        acc.record(0, 1, 1.0)
        total = acc.total_time
        self.assertEqual(total, 5.0)
        probs = acc.steady_state_probabilities(total)
        np.testing.assert_allclose(probs, [0.2, 0.2, 0.6])
        self.assertAlmostEqual(acc.average_working(total), 0.2 + 2 * 0.6)
        self.assertAlmostEqual(acc.average_utilization(total), 0.4)
        np.testing.assert_allclose(acc.broken_count_probabilities(total), [0.6, 0.2, 0.2])

    def test_unobserved_busy_levels_skipped(self):
        acc = StatisticsAccumulator(machine_count=3, repairman_count=3)
        acc.record(3, 0, 2.0)
        acc.record(2, 1, 2.0)
        self.assertAlmostEqual(acc.average_utilization(4.0), 0.5)

    def test_negative_elapsed_rejected(self):
        acc = StatisticsAccumulator(machine_count=1, repairman_count=1)
        with self.assertRaises(ValueError):
            acc.record(1, 0, -0.1)

    def test_zero_total_time(self):
        acc = StatisticsAccumulator(machine_count=1, repairman_count=1)
        self.assertEqual(acc.average_working(0.0), 0.0)

        print("✅ Statistics tests PASSED")


class TestConfig(unittest.TestCase):
    """Test configuration loading and validation."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_default_config(self):
        from repairsim.config import load_config

        cfg = load_config(None)
        self.assertEqual(cfg.machine_count, 4)
        self.assertEqual(cfg.repairman_count, 1)
        self.assertAlmostEqual(cfg.failure_rate, 0.4)
        self.assertAlmostEqual(cfg.repair_rate, 0.6)
        self.assertEqual(cfg.target_fixed_count, 100000)

    def test_yaml_file(self):
        from repairsim.config import load_config

        path = Path(self.temp_dir) / "cfg.yaml"
        path.write_text("sim:\n  machine_count: 6\n  repairman_count: 2\n  failure_rate: 0.1\n  seed: 3\n")
        cfg = load_config(path)
        self.assertEqual(cfg.machine_count, 6)
        self.assertEqual(cfg.repairman_count, 2)
        self.assertEqual(cfg.seed, 3)
        self.assertAlmostEqual(cfg.repair_rate, 0.6)

    def test_missing_explicit_file(self):
        from repairsim.config import load_config

        with self.assertRaises(FileNotFoundError):
            load_config(Path(self.temp_dir) / "nope.yaml")

    def test_invalid_values(self):
        from repairsim.config import SimulationConfig

        for bad in (
            {"repairman_count": 0},
            {"machine_count": -1},
            {"failure_rate": 0.0},
            {"repair_rate": -2.0},
            {"target_fixed_count": 0},
            {"unknown_key": 1},
            {"seed": -1},
            {"repairman_count": True},
            {"machine_count": 2.0},
            {"target_fixed_count": 10.0},
            {"seed": 3.0},
        ):
            with self.assertRaises(InvalidArgumentError, msg=str(bad)):
                SimulationConfig.from_mapping(bad)

    def test_overrides(self):
        from repairsim.config import SimulationConfig

        cfg = SimulationConfig().with_overrides(machine_count=2, seed=None)
        self.assertEqual(cfg.machine_count, 2)
        self.assertIsNone(cfg.seed)
        with self.assertRaises(InvalidArgumentError):
            SimulationConfig().with_overrides(repairman_count=0)

        print("✅ Configuration tests PASSED")


class TestAnalysis(unittest.TestCase):
    """Test analytic solution, aggregation and exports."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_single_machine_theory(self):
        from analysis.theory import analytic_steady_state

        th = analytic_steady_state(1, 1, 0.4, 0.6)
        self.assertAlmostEqual(th["steady_state_probabilities"][1], 0.6)
        self.assertAlmostEqual(th["steady_state_probabilities"][0], 0.4)
        self.assertAlmostEqual(th["average_working"], 0.6)
        self.assertAlmostEqual(th["average_utilization"], 0.4)

    def test_theory_with_enough_repairmen_is_binomial(self):
        from analysis.theory import analytic_steady_state

        lam, mu, c = 0.5, 1.5, 4
        th = analytic_steady_state(c, c, lam, mu)
        up = mu / (lam + mu)
        for k in range(c + 1):
            expected = math.comb(c, k) * up**k * (1 - up) ** (c - k)
            self.assertAlmostEqual(th["steady_state_probabilities"][k], expected)

    def test_theory_sums_to_one(self):
        from analysis.theory import analytic_steady_state

        th = analytic_steady_state(4, 1, 0.4, 0.6)
        self.assertAlmostEqual(sum(th["steady_state_probabilities"].values()), 1.0)
        self.assertEqual(sorted(th["steady_state_probabilities"]), [0, 1, 2, 3, 4])

    def test_theory_rejects_bad_input(self):
        from analysis.theory import analytic_steady_state

        with self.assertRaises(InvalidArgumentError):
            analytic_steady_state(4, 0, 0.4, 0.6)
        with self.assertRaises(InvalidArgumentError):
            analytic_steady_state(4, 1, 0.0, 0.6)

    def test_confidence_interval(self):
        from analysis.metrics import confidence_interval_95

        self.assertEqual(confidence_interval_95([]), (0.0, 0.0))
        self.assertEqual(confidence_interval_95([2.0]), (2.0, 2.0))
        lo, hi = confidence_interval_95([1.0, 2.0, 3.0, 4.0])
        self.assertLess(lo, 2.5)
        self.assertGreater(hi, 2.5)
        self.assertAlmostEqual((lo + hi) / 2, 2.5)

    def test_study_writes_csv_and_aggregates(self):
        from analysis.metrics import compare_with_theory
        from analysis.run_replications import run_study
        from analysis.theory import analytic_steady_state
        from repairsim.config import SimulationConfig

        cfg = SimulationConfig(target_fixed_count=2000, machine_count=3, repairman_count=1)
        df, aggregate = run_study(cfg, K=4, base_seed=10, results_dir=self.temp_dir)

        self.assertTrue((Path(self.temp_dir) / "replications.csv").exists())
        self.assertEqual(len(df), 4)
        self.assertEqual(list(df["seed"]), [10, 11, 12, 13])
        self.assertTrue((df["machines_fixed"] == 2000).all())
        self.assertEqual(aggregate["n"], 4)
        self.assertEqual(sorted(aggregate["steady_state_probabilities"]), [0, 1, 2, 3])

        rows = compare_with_theory(aggregate, analytic_steady_state(3, 1, 0.4, 0.6))
        names = [r["quantity"] for r in rows]
        self.assertIn("average_working", names)
        self.assertIn("p_working_3", names)

    def test_plots(self):
        from analysis.plots import plot_replication_spread, plot_state_distribution
        from analysis.run_replications import run_study
        from analysis.theory import analytic_steady_state
        from repairsim.config import SimulationConfig

        cfg = SimulationConfig(target_fixed_count=500, machine_count=2, repairman_count=1)
        _, aggregate = run_study(cfg, K=3, base_seed=0, results_dir=self.temp_dir)
        theory = analytic_steady_state(2, 1, 0.4, 0.6)
        p1 = plot_state_distribution(aggregate, theory, Path(self.temp_dir) / "dist.png")
        p2 = plot_replication_spread(
            Path(self.temp_dir) / "replications.csv", expected=theory["average_working"]
        )
        self.assertTrue(p1.exists())
        self.assertTrue(p2.exists())

        missing = Path(self.temp_dir) / "no_such_metric_spread.png"
        with self.assertRaises(KeyError):
            plot_replication_spread(
                Path(self.temp_dir) / "replications.csv", output_path=missing, metric="no_such_metric"
            )
        self.assertFalse(missing.exists())

        print("✅ Analysis tests PASSED")


def run_all_tests():
    """Run all test suites and return results."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    test_classes = [
        TestSampler,
        TestEventQueue,
        TestEntities,
        TestStatistics,
        TestConfig,
        TestAnalysis,
    ]

    for test_class in test_classes:
        suite.addTests(loader.loadTestsFromTestCase(test_class))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    print("\n" + "=" * 60)
    print(f"Tests run: {result.testsRun}")
    print(f"Failures: {len(result.failures)}")
    print(f"Errors: {len(result.errors)}")
    print("=" * 60)

    return result.wasSuccessful()


if __name__ == "__main__":
    sys.exit(0 if run_all_tests() else 1)
