#!/usr/bin/env python3
"""
QUANTUM CATS — Unit Test Suite

Run: python tests.py
     python tests.py -v                  # verbose
     python tests.py TestClusterEvaluator

Test categories:
  TestWeightedSampler   — weight → frequency convergence, zero weights
  TestGrid              — addressing, neighbour table, generator shape
  TestClusterEvaluator  — flood fill, wild substitution, per-symbol passes
  TestPayoutResolver    — tier lookup, empty tiers
  TestSpinEvaluator     — payout chain, scatter trigger, observer bonus
  TestSimulationStats   — buckets, RTP identity, merge vs single pass
  TestConfigSchema      — loading, validation kinds, retrigger profile
"""

import math
import random
import statistics
import sys
import tempfile
import unittest
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.cluster_schema import (
    ConfigErrorKind, ConfigurationError, ObserverBonusConfig, Symbol,
    default_config, expected_session_spins, load_config, retrigger_probability,
    validate_config,
)
from sim_engine.cluster.clusters import ClusterEvaluator
from sim_engine.cluster.grid import Grid, GridGenerator
from sim_engine.cluster.paytable import PayoutResolver
from sim_engine.cluster.sampler import WeightedSampler
from sim_engine.cluster.spin import SpinEvaluator
from sim_engine.cluster.stats import SimulationResult, categorize_win


def make_grid(*rows, size=7, filler="EN"):
    """7x7 grid from short row strings; missing rows/cells are connector symbols."""
    parsed = [[Symbol(tok) for tok in row.split()] for row in rows]
    full = []
    for r in range(size):
        row = parsed[r] if r < len(parsed) else []
        full.append(row + [Symbol(filler)] * (size - len(row)))
    return Grid.from_rows(full)


class FixedRNG:
    """random() always returns the same value."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


# ============================================================
# Sampler
# ============================================================

class TestWeightedSampler(unittest.TestCase):

    def test_frequencies_converge_chi_squared(self):
        """Empirical frequencies match weight/total (chi², 3 dof, α=0.001)."""
        weights = {Symbol.H1: 1, Symbol.H2: 2, Symbol.L1: 3, Symbol.L4: 4}
        sampler = WeightedSampler(weights)
        rng = random.Random(7)
        n = 100_000
        counts = {s: 0 for s in weights}
        for _ in range(n):
            counts[sampler.draw(rng)] += 1
        total = sum(weights.values())
        chi2 = sum((counts[s] - n * w / total) ** 2 / (n * w / total) for s, w in weights.items())
        self.assertLess(chi2, 16.27)

    def test_draw_many_matches_weights(self):
        sampler = WeightedSampler({Symbol.L1: 1, Symbol.L2: 3})
        draws = sampler.draw_many(random.Random(11), 40_000)
        share = draws.count(Symbol.L2) / len(draws)
        self.assertAlmostEqual(share, 0.75, delta=0.01)

    def test_zero_weight_never_drawn(self):
        sampler = WeightedSampler({Symbol.H1: 0, Symbol.L1: 5, Symbol.SC: 0})
        rng = random.Random(3)
        self.assertEqual(set(sampler.draw_many(rng, 2000)), {Symbol.L1})
        self.assertEqual(sampler.draw(FixedRNG(0.0)), Symbol.L1)
        self.assertEqual(sampler.probability(Symbol.H1), 0.0)

    def test_probability(self):
        sampler = WeightedSampler({Symbol.H1: 1, Symbol.L1: 3})
        self.assertAlmostEqual(sampler.probability(Symbol.L1), 0.75)

    def test_rejects_bad_tables(self):
        with self.assertRaises(ConfigurationError) as ctx:
            WeightedSampler({Symbol.H1: 0, Symbol.L1: 0})
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.INVALID_WEIGHTS)
        with self.assertRaises(ConfigurationError) as ctx:
            WeightedSampler({Symbol.H1: -1, Symbol.L1: 4})
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.INVALID_WEIGHTS)


# ============================================================
# Grid
# ============================================================

class TestGrid(unittest.TestCase):

    def test_addressing(self):
        grid = make_grid("H1 L1", "WD")
        self.assertEqual(grid[0, 0], Symbol.H1)
        self.assertEqual(grid[0, 1], Symbol.L1)
        self.assertEqual(grid[1, 0], Symbol.WD)
        self.assertEqual(grid[6, 6], Symbol.EN)
        self.assertEqual(grid.position(grid.index(3, 4)), (3, 4))

    def test_neighbours_are_orthogonal(self):
        adj = Grid(3, 3, [Symbol.EN] * 9).neighbours()
        self.assertEqual(sorted(adj[4]), [1, 3, 5, 7])
        self.assertEqual(sorted(adj[0]), [1, 3])
        self.assertEqual(sorted(adj[8]), [5, 7])

    def test_rejects_wrong_cell_count(self):
        with self.assertRaises(ValueError):
            Grid(2, 2, [Symbol.EN] * 3)

    def test_generator_shape(self):
        gen = GridGenerator(WeightedSampler({Symbol.L1: 1, Symbol.L2: 1}), 7, 7)
        grid = gen.generate(random.Random(1))
        self.assertEqual((grid.rows, grid.cols), (7, 7))
        self.assertEqual(len(grid.cells), 49)
        self.assertEqual(len(grid.to_rows()), 7)


# ============================================================
# Cluster Evaluator
# ============================================================

class TestClusterEvaluator(unittest.TestCase):

    def setUp(self):
        self.ev = ClusterEvaluator(min_size=5)

    def test_single_region(self):
        """One connected H1 region of 6, rest connector → exactly that cluster."""
        grid = make_grid("H1 H1 H1 H1 H1 H1")
        self.assertEqual(self.ev.cluster_sizes(grid), {Symbol.H1: [6]})

    def test_below_minimum_ignored(self):
        grid = make_grid("H2 H2 H2 H2")
        self.assertEqual(self.ev.cluster_sizes(grid), {})

    def test_pure_wild_region_never_pays(self):
        grid = make_grid("WD WD WD", "WD WD WD")
        self.assertEqual(self.ev.cluster_sizes(grid), {})

    def test_four_plus_one_wild(self):
        """4 matching symbols + 1 adjacent wild = size-5 cluster."""
        grid = make_grid("H2 H2 H2 H2 WD")
        self.assertEqual(self.ev.cluster_sizes(grid), {Symbol.H2: [5]})

    def test_wild_counts_for_each_anchor(self):
        """The same wild completes an H1 cluster and an L1 cluster."""
        grid = make_grid(
            "H1 H1 H1 H1 WD L1 L1",
            "EN EN EN EN EN L1 L1",
        )
        self.assertEqual(self.ev.cluster_sizes(grid), {Symbol.H1: [5], Symbol.L1: [5]})

    def test_wild_bridges_two_groups(self):
        grid = make_grid("H1 H1 H1 WD H1 H1 H1")
        self.assertEqual(self.ev.cluster_sizes(grid), {Symbol.H1: [7]})

    def test_separate_clusters_in_discovery_order(self):
        grid = make_grid(
            "H1 H1 H1 H1 H1",
            "",
            "H1 H1 H1 H1 H1 H1",
        )
        self.assertEqual(self.ev.cluster_sizes(grid), {Symbol.H1: [5, 6]})

    def test_scatter_and_connector_break_regions(self):
        grid = make_grid("L2 L2 L2 SC L2 L2 L2", "EN EN EN EN EN EN EN")
        self.assertEqual(self.ev.cluster_sizes(grid), {})

    def test_diagonals_do_not_connect(self):
        grid = make_grid(
            "L3 EN EN EN EN",
            "EN L3 EN EN EN",
            "EN EN L3 EN EN",
            "EN EN EN L3 EN",
            "EN EN EN EN L3",
        )
        self.assertEqual(self.ev.cluster_sizes(grid), {})

    def test_full_grid_single_symbol(self):
        grid = Grid(7, 7, [Symbol.L4] * 49)
        self.assertEqual(self.ev.cluster_sizes(grid), {Symbol.L4: [49]})

    def test_find_clusters_records_cells(self):
        grid = make_grid("H3 H3 WD H3 H3")
        (cluster,) = self.ev.find_clusters(grid)
        self.assertEqual(cluster.symbol, Symbol.H3)
        self.assertEqual(sorted(cluster.cells), [0, 1, 2, 3, 4])
        info = self.ev.describe(grid, cluster)
        self.assertEqual(info["wilds"], 1)
        self.assertEqual(info["positions"][0], (0, 0))

    def test_custom_minimum(self):
        grid = make_grid("L1 L1 L1")
        self.assertEqual(ClusterEvaluator(min_size=3).cluster_sizes(grid), {Symbol.L1: [3]})


# ============================================================
# Payout Resolver
# ============================================================

class TestPayoutResolver(unittest.TestCase):

    def test_tier_lookup(self):
        resolver = PayoutResolver({Symbol.H1: {5: 2.0, 10: 25.0}})
        self.assertEqual(resolver.resolve(Symbol.H1, 7), 2.0)
        self.assertEqual(resolver.resolve(Symbol.H1, 10), 25.0)
        self.assertEqual(resolver.resolve(Symbol.H1, 12), 25.0)
        self.assertEqual(resolver.resolve(Symbol.H1, 4), 0.0)

    def test_unknown_symbol_pays_nothing(self):
        resolver = PayoutResolver({Symbol.H1: {5: 2.0}})
        self.assertEqual(resolver.resolve(Symbol.L1, 30), 0.0)

    def test_reference_top_tier(self):
        resolver = PayoutResolver(default_config().paytable)
        self.assertEqual(resolver.resolve(Symbol.H1, 49), 50.0)
        self.assertEqual(resolver.resolve(Symbol.L4, 14), 1.2)
        self.assertEqual(resolver.min_size(Symbol.H2), 5)

    def test_empty_tiers_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            PayoutResolver({Symbol.H1: {}})
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.EMPTY_PAYOUT_TIERS)


# ============================================================
# Spin Evaluator
# ============================================================

class TestSpinEvaluator(unittest.TestCase):

    def setUp(self):
        self.config = default_config(observer_bonus=ObserverBonusConfig(probability=0.0))
        self.ev = SpinEvaluator.from_config(self.config)

    def test_single_symbol_grid_pays_top_tier_exactly(self):
        """Degenerate weights: every cell H1 → one 49-cluster → 50x stake."""
        gen = GridGenerator(WeightedSampler({Symbol.H1: 1}), 7, 7)
        outcome = self.ev.spin(gen, random.Random(0))
        self.assertEqual(outcome.payout, 50.0)
        self.assertEqual(len(outcome.wins), 1)
        self.assertEqual(self.ev.spin(gen, random.Random(0), multiplier=3.0).payout, 150.0)

    def test_payout_sums_clusters_times_multiplier(self):
        grid = make_grid(
            "H1 H1 H1 H1 H1 H1",
            "",
            "L1 L1 L1 L1 L1",
        )
        outcome = self.ev.evaluate(grid, multiplier=2.0)
        self.assertAlmostEqual(outcome.payout, (3.0 + 0.5) * 2.0)

    def test_scatter_trigger(self):
        grid = make_grid("SC SC SC")
        self.assertTrue(self.ev.evaluate(grid).triggered_free_spins)
        self.assertEqual(self.ev.evaluate(grid).scatter_count, 3)
        self.assertFalse(self.ev.evaluate(grid, in_free_spins=True).triggered_free_spins)
        self.assertFalse(self.ev.evaluate(make_grid("SC SC")).triggered_free_spins)

    def test_observer_bonus(self):
        ev = SpinEvaluator.from_config(default_config())
        ev.bonus_probability, ev.bonus_multiplier = 1.0, 1.5
        paying = make_grid("H1 H1 H1 H1 H1")
        outcome = ev.evaluate(paying, rng=FixedRNG(0.5))
        self.assertTrue(outcome.observer_bonus)
        self.assertAlmostEqual(outcome.payout, 2.0 * 1.5)
        blank = ev.evaluate(make_grid(""), rng=FixedRNG(0.5))
        self.assertFalse(blank.observer_bonus)
        self.assertEqual(blank.payout, 0.0)

    def test_no_rng_means_no_bonus(self):
        ev = SpinEvaluator.from_config(default_config())
        outcome = ev.evaluate(make_grid("H1 H1 H1 H1 H1"))
        self.assertEqual(outcome.payout, 2.0)

    def test_to_dict(self):
        outcome = self.ev.evaluate(make_grid("H2 H2 H2 H2 H2"))
        data = outcome.to_dict()
        self.assertEqual(data["wins"], [{"symbol": "H2", "size": 5, "pays": 1.5}])


# ============================================================
# Statistics
# ============================================================

class TestSimulationStats(unittest.TestCase):

    def test_win_distribution_buckets(self):
        self.assertEqual(categorize_win(0), "0x")
        self.assertEqual(categorize_win(0.5), "0.01-1x")
        self.assertEqual(categorize_win(1.0), "1-5x")
        self.assertEqual(categorize_win(7.0), "5-20x")
        self.assertEqual(categorize_win(50.0), "20-100x")
        self.assertEqual(categorize_win(250.0), "100-500x")
        self.assertEqual(categorize_win(5000.0), "500x+")

    def test_rtp_and_hit_rate(self):
        s = SimulationResult()
        for payout in [0.0, 0.0, 2.0, 0.4]:
            s.record(payout)
        s.finalize()
        self.assertEqual(s.rtp, s.total_won / s.total_wagered * 100)
        self.assertAlmostEqual(s.rtp, 60.0)
        self.assertAlmostEqual(s.hit_rate, 50.0)
        self.assertEqual(sum(s.win_distribution.values()), s.total_spins)

    def test_variance_matches_population_variance(self):
        payouts = [0.0, 3.0, 0.5, 12.0, 0.0, 0.25, 40.0]
        s = SimulationResult()
        for p in payouts:
            s.record(p)
        s.finalize()
        self.assertAlmostEqual(s.variance, statistics.pvariance(payouts), places=9)
        self.assertAlmostEqual(s.std_dev, math.sqrt(statistics.pvariance(payouts)), places=9)

    def test_merge_equals_single_pass(self):
        rng = random.Random(9)
        payouts = [rng.choice([0.0, 0.0, 0.3, 1.2, 8.0, 150.0]) for _ in range(3000)]
        whole = SimulationResult()
        for p in payouts:
            whole.record(p)
        parts = [SimulationResult() for _ in range(3)]
        for i, p in enumerate(payouts):
            parts[i % 3].record(p)
        merged = SimulationResult()
        for part in parts:
            merged.merge(part)
        whole.finalize()
        merged.finalize()
        self.assertEqual(merged.total_spins, whole.total_spins)
        self.assertEqual(merged.win_distribution, whole.win_distribution)
        self.assertEqual(merged.max_win, whole.max_win)
        self.assertAlmostEqual(merged.rtp, whole.rtp, places=9)
        self.assertAlmostEqual(merged.variance, whole.variance, places=6)

    def test_empty_result_is_a_config_error(self):
        with self.assertRaises(ConfigurationError) as ctx:
            SimulationResult().finalize()
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.INVALID_SPIN_COUNT)


# ============================================================
# Config Schema
# ============================================================

class TestConfigSchema(unittest.TestCase):

    def test_reference_config_is_valid(self):
        config = default_config()
        validate_config(config)
        self.assertEqual((config.grid.rows, config.grid.cols), (7, 7))
        self.assertEqual(sum(config.base_weights.values()), 190)
        self.assertEqual(len(config.free_spins.modes), 3)

    def test_load_from_dict_with_string_keys(self):
        config = load_config({"base_weights": {"H1": 2, "EN": 1}, "paytable": {"H1": {"5": 1.0}}})
        self.assertEqual(config.base_weights[Symbol.H1], 2)
        self.assertEqual(config.paytable[Symbol.H1], {5: 1.0})

    def test_json_file_roundtrip(self):
        config = default_config()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "game.json"
            path.write_text(config.model_dump_json(indent=2))
            loaded = load_config(path)
        self.assertEqual(loaded.model_dump(), config.model_dump())

    def test_schema_violation_wrapped(self):
        with self.assertRaises(ConfigurationError) as ctx:
            load_config({"grid": {"rows": "seven"}})
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.INVALID_FIELD)

    def test_special_symbol_paytable_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            load_config({"paytable": {"WD": {"5": 1.0}}})
        self.assertEqual(ctx.exception.kind, ConfigErrorKind.INVALID_FIELD)

    def test_validation_kinds(self):
        cases = [
            ({"base_weights": {Symbol.H1: 0}}, ConfigErrorKind.INVALID_WEIGHTS),
            ({"free_spin_weights": {Symbol.H1: -2, Symbol.L1: 5}}, ConfigErrorKind.INVALID_WEIGHTS),
            ({"grid": {"rows": 0, "cols": 7}}, ConfigErrorKind.INVALID_GRID),
            ({"spins": 0}, ConfigErrorKind.INVALID_SPIN_COUNT),
            ({"paytable": {Symbol.H1: {}}}, ConfigErrorKind.EMPTY_PAYOUT_TIERS),
            ({"paytable": {}}, ConfigErrorKind.EMPTY_PAYOUT_TIERS),
            ({"free_spin_weights": {Symbol.SC: 1}}, ConfigErrorKind.NON_TERMINATING_FREE_SPINS),
        ]
        for overrides, kind in cases:
            with self.subTest(kind=kind.value):
                with self.assertRaises(ConfigurationError) as ctx:
                    validate_config(load_config(overrides))
                self.assertEqual(ctx.exception.kind, kind)

    def test_sampler_and_resolver_snapshot_tables(self):
        """Edits to a config's dicts after construction don't reach a built game."""
        config = default_config()
        sampler = WeightedSampler(config.base_weights)
        resolver = PayoutResolver(config.paytable)
        before = sampler.probability(Symbol.H1)

        config.base_weights[Symbol.H1] = 1000
        config.paytable[Symbol.H1][5] = 999.0

        self.assertEqual(sampler.probability(Symbol.H1), before)
        self.assertEqual(sampler.total_weight, 190)
        self.assertEqual(resolver.resolve(Symbol.H1, 5), 2.0)
        self.assertEqual(sum(default_config().base_weights.values()), 190)

    def test_retrigger_profile(self):
        config = default_config()
        p = retrigger_probability(config.free_spin_weights, 49, 3)
        self.assertGreater(p, 0.0)
        self.assertLess(p * config.free_spins.retrigger_spins, 1.0)
        self.assertAlmostEqual(expected_session_spins(10, 0.1, 3), 10 / 0.7)
        self.assertEqual(expected_session_spins(10, 0.5, 3), math.inf)
        self.assertEqual(retrigger_probability({Symbol.SC: 1}, 49, 3), 1.0)
        self.assertEqual(retrigger_probability({Symbol.L1: 1}, 49, 3), 0.0)


if __name__ == "__main__":
    unittest.main()
