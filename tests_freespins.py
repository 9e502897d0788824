#!/usr/bin/env python3
"""
Tests for the Free-Spin Session Runner

Validates:
1.  Fixed modes produce exact session plans
2.  Ranged modes sample once, inside their bounds, into a frozen plan
3.  Zero-weight modes are never selected
4.  State machine walks SELECTING_MODE → SPINNING → JACKPOT_CHECK → DONE
5.  Multiplier grows by the plan's growth after every spin
6.  Retriggers extend the session; the hard cap stops runaway sessions
7.  Multiverse jackpot awards best-of-k × k at the final multiplier
8.  10,000 sessions all terminate well under 10,000 spins, mean matches theory
"""

import dataclasses
import random
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.cluster_schema import (
    FloatRange, FreeSpinConfig, FreeSpinMode, GridConfig, IntRange, JackpotConfig,
    ObserverBonusConfig, Symbol, default_config, retrigger_probability, validate_config,
)
from sim_engine.cluster.freespins import FreeSpinRunner, SessionState, sample_plan
from sim_engine.cluster.grid import GridGenerator
from sim_engine.cluster.sampler import WeightedSampler
from sim_engine.cluster.spin import SpinEvaluator


def _runner(settings: FreeSpinConfig, weights: dict, rows: int = 7, cols: int = 7) -> FreeSpinRunner:
    config = default_config(observer_bonus=ObserverBonusConfig(probability=0.0))
    evaluator = SpinEvaluator.from_config(config)
    generator = GridGenerator(WeightedSampler(weights), rows, cols)
    return FreeSpinRunner(settings, evaluator, generator)


# ============================================================
# Tests
# ============================================================

def test_fixed_mode_plan():
    """A mode without ranges becomes exactly its own numbers."""
    mode = FreeSpinMode(name="Particle", spins=5, start_multiplier=3.0, growth=1.0)
    plan = sample_plan(mode, random.Random(1))
    assert (plan.mode, plan.spins, plan.start_multiplier, plan.growth) == ("Particle", 5, 3.0, 1.0)
    print("✅ Fixed mode plan is exact")


def test_ranged_mode_sampled_within_bounds():
    """Superposition-style ranges land inside their bounds; plan is frozen."""
    mode = FreeSpinMode(
        name="Superposition",
        spins=IntRange(low=3, high=20),
        start_multiplier=IntRange(low=1, high=5),
        growth=FloatRange(low=0.0, high=1.0),
    )
    rng = random.Random(4)
    plans = [sample_plan(mode, rng) for _ in range(500)]
    assert all(3 <= p.spins <= 20 for p in plans)
    assert all(p.start_multiplier in (1.0, 2.0, 3.0, 4.0, 5.0) for p in plans)
    assert all(0.0 <= p.growth < 1.0 for p in plans)
    assert len({p.spins for p in plans}) > 10, "spin counts should vary across sessions"

    try:
        plans[0].spins = 99
    except dataclasses.FrozenInstanceError:
        pass
    else:
        raise AssertionError("SessionPlan must be immutable")
    print("✅ Ranged mode sampled once within bounds")


def test_zero_weight_mode_never_selected():
    settings = FreeSpinConfig(modes=[
        FreeSpinMode(name="Off", spins=1, weight=0.0),
        FreeSpinMode(name="On", spins=1, weight=1.0),
    ])
    runner = _runner(settings, {Symbol.EN: 1})
    rng = random.Random(2)
    assert {runner.run(rng).plan.mode for _ in range(200)} == {"On"}
    print("✅ Zero-weight mode never selected")


def test_state_sequence_and_multiplier_growth():
    settings = FreeSpinConfig(modes=[FreeSpinMode(name="Particle", spins=5, start_multiplier=3.0, growth=1.0)])
    session = _runner(settings, {Symbol.EN: 1}).run(random.Random(0))
    assert session.states == [
        SessionState.SELECTING_MODE, SessionState.SPINNING,
        SessionState.JACKPOT_CHECK, SessionState.DONE,
    ]
    assert session.spins_played == 5
    assert session.multiplier == 8.0
    assert session.total_win == 0.0
    assert not session.capped
    print("✅ States in order, multiplier 3 → 8 over 5 spins")


def test_retrigger_and_hard_cap():
    """Every grid is all scatters → every spin retriggers until the cap."""
    settings = FreeSpinConfig(
        modes=[FreeSpinMode(name="Loop", spins=2)],
        retrigger_spins=3,
        max_session_spins=50,
    )
    session = _runner(settings, {Symbol.SC: 1}).run(random.Random(0))
    assert session.capped
    assert session.spins_played == 50
    assert session.retriggers == 50
    print("✅ Retriggers extend the session, cap stops it at 50")


def test_session_spin_cap_without_retriggers():
    settings = FreeSpinConfig(modes=[FreeSpinMode(name="Long", spins=20)], max_session_spins=7)
    session = _runner(settings, {Symbol.EN: 1}).run(random.Random(0))
    assert session.capped and session.spins_played == 7
    print("✅ Cap applies to plain sessions too")


def test_multiverse_jackpot():
    """All-H1 grids pay 50x × multiplier; jackpot adds best-of-4 × 4."""
    settings = FreeSpinConfig(
        modes=[FreeSpinMode(name="Jackpot", spins=1, start_multiplier=2.0, growth=0.0)],
        jackpot=JackpotConfig(threshold=2.0, probability=1.0, universes=4),
    )
    session = _runner(settings, {Symbol.H1: 1}).run(random.Random(0))
    assert session.jackpot_triggered
    assert session.jackpot_win == 50.0 * 2.0 * 4
    assert session.total_win == 100.0 + 400.0
    print("✅ Jackpot awards best universe × 4")


def test_jackpot_needs_threshold():
    settings = FreeSpinConfig(
        modes=[FreeSpinMode(name="Low", spins=1, start_multiplier=1.0, growth=0.0)],
        jackpot=JackpotConfig(threshold=100.0, probability=1.0, universes=4),
    )
    session = _runner(settings, {Symbol.H1: 1}).run(random.Random(0))
    assert not session.jackpot_triggered and session.jackpot_win == 0.0
    assert session.total_win == 50.0
    print("✅ No jackpot below the multiplier threshold")


def test_sessions_terminate():
    """10,000 sessions under a fixed retrigger rate stay far below 10,000 spins."""
    weights = {Symbol.EN: 11, Symbol.SC: 1}
    config = default_config(
        grid=GridConfig(rows=4, cols=4),
        free_spin_weights=weights,
        free_spins=FreeSpinConfig(max_session_spins=10_000),
    )
    validate_config(config)
    runner = _runner(config.free_spins, weights, rows=4, cols=4)
    rng = random.Random(123)
    sessions = [runner.run(rng) for _ in range(10_000)]

    longest = max(s.spins_played for s in sessions)
    assert longest < 10_000, f"longest session {longest}"
    assert not any(s.capped for s in sessions)

    p = retrigger_probability(weights, 16, config.scatter_trigger)
    mean_base = (5 + 15 + (3 + 20) / 2) / 3
    expected = mean_base / (1 - p * config.free_spins.retrigger_spins)
    mean = sum(s.spins_played for s in sessions) / len(sessions)
    assert abs(mean - expected) / expected < 0.10, f"mean {mean:.2f} vs expected {expected:.2f}"
    print(f"✅ 10,000 sessions terminated (longest={longest}, mean={mean:.1f}, theory={expected:.1f})")


if __name__ == "__main__":
    tests = [
        test_fixed_mode_plan,
        test_ranged_mode_sampled_within_bounds,
        test_zero_weight_mode_never_selected,
        test_state_sequence_and_multiplier_growth,
        test_retrigger_and_hard_cap,
        test_session_spin_cap_without_retriggers,
        test_multiverse_jackpot,
        test_jackpot_needs_threshold,
        test_sessions_terminate,
    ]

    print(f"\n{'='*60}")
    print(f"Free-Spin Session Tests — {len(tests)} tests")
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
