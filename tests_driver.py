#!/usr/bin/env python3
"""
Tests for the Simulation Driver

Validates:
1.  Degenerate single-symbol game: every spin pays the top tier exactly
2.  RTP identity and histogram total on a real run
3.  Fixed seed reproduces the run; different seeds differ
4.  Parallel batches partition N exactly and merge into one finalized result
5.  Configuration errors abort before any spin runs
6.  Free spins are played and accounted for in the reference game
7.  Approximate evaluator is measured against the exact one, never substituted
8.  Logging setup is idempotent
9.  The explicit spin count is the one validated; CLI spin-count precedence
10. Free spins draw from the free-spin table; process and thread executors agree
"""

import logging
import random
import sys
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.cluster_schema import (
    ConfigErrorKind, ConfigurationError, FreeSpinConfig, FreeSpinMode, GridConfig,
    ObserverBonusConfig, Symbol, default_config,
)
from config.settings import configure_logging
from sim_engine.cluster import ClusterGame, SimulationDriver, run_batch, simulate
from sim_engine.cluster.approx import CountApproximation, compare_evaluators
from sim_engine.cluster.grid import Grid
from sim_engine.cluster.paytable import PayoutResolver
from sim_engine.cluster.rng import partition
from sim_engine.cluster.stats import SimulationResult
from tools.cluster_cli import spin_counts

NO_BONUS = ObserverBonusConfig(probability=0.0)


def _core(result) -> dict:
    data = result.to_dict()
    data.pop("duration_s")
    return data


# ============================================================
# Tests
# ============================================================

def test_degenerate_single_symbol_game():
    """All-H1 grids: one 49-cell cluster → 50x every spin, zero variance."""
    config = default_config(base_weights={Symbol.H1: 1}, observer_bonus=NO_BONUS)
    result = SimulationDriver(config, seed=1).run(200)
    assert result.total_spins == 200
    assert result.total_won == 50.0 * 200
    assert result.rtp == 5000.0
    assert result.hit_rate == 100.0
    assert result.max_win == 50.0
    assert result.variance == 0.0 and result.std_dev == 0.0
    assert result.fs_triggered == 0
    assert result.win_distribution["20-100x"] == 200
    print("✅ Degenerate game pays exactly 50x per spin")


def test_rtp_identity_and_histogram_total():
    result = SimulationDriver(default_config(), seed=7).run(3000)
    assert result.total_wagered == 3000
    assert result.rtp == result.total_won / result.total_wagered * 100
    assert sum(result.win_distribution.values()) == result.total_spins
    assert result.hits == result.total_spins - result.win_distribution["0x"]
    assert abs(result.total_won - (result.base_won + result.free_spin_won)) < 1e-6
    assert result.finalized
    print(f"✅ RTP identity holds (RTP={result.rtp:.2f}%)")


def test_reference_game_triggers_free_spins():
    result = SimulationDriver(default_config(), seed=11).run(3000)
    assert result.hits > 0
    assert result.fs_triggered > 0
    assert result.fs_spins_played >= 3 * result.fs_triggered
    assert result.max_win > 0
    print(f"✅ Free spins triggered {result.fs_triggered} times")


def test_fixed_seed_reproducible():
    config = default_config()
    a = SimulationDriver(config, seed=99).run(1500)
    b = SimulationDriver(config, seed=99).run(1500)
    c = SimulationDriver(config, seed=100).run(1500)
    assert _core(a) == _core(b)
    assert _core(a) != _core(c)
    print("✅ Same seed → same result")


def test_parallel_batches_merge():
    config = default_config()
    result = SimulationDriver(config, seed=5, workers=3, executor="thread").run(2000)
    assert result.workers == 3
    assert result.total_spins == 2000
    assert sum(result.win_distribution.values()) == 2000

    expected = SimulationResult()
    for i, n in enumerate(partition(2000, 3)):
        expected.merge(run_batch(config, n, 5, i))
    expected.finalize()
    assert result.total_won == expected.total_won
    assert result.variance == expected.variance
    assert result.max_win == expected.max_win

    again = SimulationDriver(config, seed=5, workers=3, executor="thread").run(2000)
    assert _core(again) == _core(result)
    print("✅ Parallel batches merge deterministically")


def test_partition():
    assert partition(10, 3) == [4, 3, 3]
    assert partition(2, 5) == [1, 1]
    assert sum(partition(1_000_001, 8)) == 1_000_001
    print("✅ Partition sizes differ by at most one")


def test_config_errors_abort_before_spinning():
    cases = [
        (default_config(base_weights={Symbol.H1: 0, Symbol.L1: 0}), 100, ConfigErrorKind.INVALID_WEIGHTS),
        (default_config(grid=GridConfig(rows=7, cols=0)), 100, ConfigErrorKind.INVALID_GRID),
        (default_config(spins=-5), None, ConfigErrorKind.INVALID_SPIN_COUNT),
        (default_config(), -5, ConfigErrorKind.INVALID_SPIN_COUNT),
        (default_config(paytable={Symbol.H1: {}}), 100, ConfigErrorKind.EMPTY_PAYOUT_TIERS),
    ]
    for config, spins, kind in cases:
        with patch("sim_engine.cluster.driver.run_batch") as batch:
            try:
                SimulationDriver(config).run(spins)
            except ConfigurationError as e:
                assert e.kind == kind, f"{e.kind} != {kind}"
            else:
                raise AssertionError(f"expected {kind}")
            batch.assert_not_called()

    try:
        SimulationDriver(default_config()).run(0)
    except ConfigurationError as e:
        assert e.kind == ConfigErrorKind.INVALID_SPIN_COUNT
    else:
        raise AssertionError("zero spins must be rejected")
    print("✅ Config errors raised before any spin")


def test_explicit_spin_count_overrides_config():
    """run(n) validates and plays n spins even when config.spins is unusable."""
    config = default_config(spins=0, observer_bonus=NO_BONUS)
    result = SimulationDriver(config, seed=1).run(100)
    assert result.total_spins == 100
    try:
        SimulationDriver(config).run()
    except ConfigurationError as e:
        assert e.kind == ConfigErrorKind.INVALID_SPIN_COUNT
    else:
        raise AssertionError("config.spins=0 must be rejected when no count is given")
    print("✅ Explicit spin count is the one validated")


def test_cli_spin_counts():
    config = default_config(spins=2500)
    assert spin_counts([500, 1000], config, from_file=True, env_spins=70) == [500, 1000]
    assert spin_counts(None, config, from_file=True, env_spins=70) == [70]
    assert spin_counts(None, config, from_file=True) == [2500]
    assert spin_counts(None, config) == [10_000, 100_000, 1_000_000]
    print("✅ CLI picks --spins, then SIM_SPINS, then the config file's count")


def test_free_spins_use_free_spin_weights():
    """Base grids are all scatters, free-spin grids all H1: Particle pays 50 × (3+4+5+6+7)."""
    config = default_config(
        base_weights={Symbol.SC: 1},
        free_spin_weights={Symbol.H1: 1},
        free_spins=FreeSpinConfig(modes=[
            FreeSpinMode(name="Particle", spins=5, start_multiplier=3.0, growth=1.0),
        ]),
        observer_bonus=NO_BONUS,
    )
    game = ClusterGame(config)
    payout, outcome, session = game.play(random.Random(0))
    assert outcome.payout == 0.0 and outcome.scatter_count == 49
    assert outcome.triggered_free_spins
    assert session.total_win == 1250.0
    assert payout == 1250.0
    summary = session.to_dict()
    assert summary["mode"] == "Particle"
    assert summary["spins_played"] == 5 and summary["retriggers"] == 0
    assert summary["final_multiplier"] == 8.0
    print("✅ Free spins draw from the free-spin weight table")


def test_process_and_thread_executors_agree():
    config = default_config()
    by_process = SimulationDriver(config, seed=3, workers=2, executor="process").run(400)
    by_thread = SimulationDriver(config, seed=3, workers=2, executor="thread").run(400)
    assert by_process.workers == by_thread.workers == 2
    assert _core(by_process) == _core(by_thread)
    print("✅ Process and thread executors give identical results")


def test_unknown_executor():
    try:
        SimulationDriver(default_config(), executor="gpu")
    except ValueError as e:
        assert "gpu" in str(e)
    else:
        raise AssertionError("unknown executor accepted")
    print("✅ Unknown executor rejected")


def test_simulate_wrapper_uses_config_spins():
    config = default_config(spins=300, observer_bonus=NO_BONUS)
    result = simulate(config, seed=3)
    assert result.total_spins == 300
    print("✅ simulate() defaults to config.spins")


def test_approximation_ignores_adjacency():
    """Six scattered H1s: exact pays nothing, the shortcut may pay tier 6."""
    cells = [Symbol.EN] * 49
    for i in (0, 2, 4, 14, 16, 18):
        cells[i] = Symbol.H1
    grid = Grid(7, 7, cells)
    approx = CountApproximation(PayoutResolver(default_config().paytable))

    class AlwaysConnect:
        def random(self):
            return 0.0

    assert approx.payout(grid, AlwaysConnect()) == 3.0
    print("✅ Count approximation pays non-adjacent symbols")


def test_compare_evaluators_report():
    report = compare_evaluators(default_config(), grids=2000, seed=1)
    data = report.to_dict()
    assert data["grids"] == 2000
    assert report.exact_mean > 0
    assert data["pass"] == (report.relative_error <= report.tolerance)
    print(f"✅ Approximation drift measured (rel. error {report.relative_error:.3f})")


def test_configure_logging_idempotent():
    logger = configure_logging("DEBUG")
    configure_logging("DEBUG")
    assert logger.name == "quantumcats"
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    print("✅ Logging configured once")


if __name__ == "__main__":
    tests = [
        test_degenerate_single_symbol_game,
        test_rtp_identity_and_histogram_total,
        test_reference_game_triggers_free_spins,
        test_fixed_seed_reproducible,
        test_parallel_batches_merge,
        test_partition,
        test_config_errors_abort_before_spinning,
        test_explicit_spin_count_overrides_config,
        test_cli_spin_counts,
        test_free_spins_use_free_spin_weights,
        test_process_and_thread_executors_agree,
        test_unknown_executor,
        test_simulate_wrapper_uses_config_spins,
        test_approximation_ignores_adjacency,
        test_compare_evaluators_report,
        test_configure_logging_idempotent,
    ]

    print(f"\n{'='*60}")
    print(f"Simulation Driver Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
