"""
QUANTUM CATS — Adjacency Approximation (validation only)

The early prototype skipped flood fill: any anchor symbol showing ≥ 5 times
(wilds ignored) was assumed to connect with a flat 30% chance and paid
min(count, 15). That is a different game from the exact one, so the driver
never uses it. `compare_evaluators` plays both on identical grids and
reports how far the shortcut drifts from the exact evaluator.
"""

from dataclasses import dataclass

from config.cluster_schema import ANCHOR_SYMBOLS, SimulationConfig
from sim_engine.cluster.grid import GridGenerator
from sim_engine.cluster.paytable import PayoutResolver
from sim_engine.cluster.rng import derive_seed, make_stream
from sim_engine.cluster.sampler import WeightedSampler
from sim_engine.cluster.spin import SpinEvaluator


class CountApproximation:
    """Payout from raw symbol counts, ignoring adjacency."""

    def __init__(self, resolver: PayoutResolver, min_count: int = 5,
                 connect_chance: float = 0.30, size_cap: int = 15):
        self.resolver = resolver
        self.min_count = min_count
        self.connect_chance = connect_chance
        self.size_cap = size_cap

    def payout(self, grid, rng, multiplier: float = 1.0) -> float:
        total = 0.0
        for symbol in ANCHOR_SYMBOLS:
            count = grid.count(symbol)
            if count >= self.min_count and rng.random() < self.connect_chance:
                total += self.resolver.resolve(symbol, min(count, self.size_cap))
        return total * multiplier


@dataclass
class ApproximationReport:
    grids: int
    exact_mean: float
    approx_mean: float
    exact_hit_rate: float
    approx_hit_rate: float
    tolerance: float

    @property
    def relative_error(self) -> float:
        if self.exact_mean == 0:
            return 0.0 if self.approx_mean == 0 else float("inf")
        return abs(self.approx_mean - self.exact_mean) / self.exact_mean

    @property
    def within_tolerance(self) -> bool:
        return self.relative_error <= self.tolerance

    def to_dict(self) -> dict:
        return {
            "grids": self.grids,
            "exact_mean_payout": round(self.exact_mean, 6),
            "approx_mean_payout": round(self.approx_mean, 6),
            "exact_hit_rate_pct": round(self.exact_hit_rate * 100, 4),
            "approx_hit_rate_pct": round(self.approx_hit_rate * 100, 4),
            "relative_error": round(self.relative_error, 6),
            "tolerance": self.tolerance,
            "pass": self.within_tolerance,
        }


def compare_evaluators(config: SimulationConfig, grids: int = 100_000, seed: int = 42,
                       tolerance: float = 0.01) -> ApproximationReport:
    """Score base-game grids with both evaluators (observer bonus off)."""
    exact = SpinEvaluator.from_config(config)
    exact.bonus_probability = 0.0
    approx = CountApproximation(exact.resolver, min_count=config.min_cluster_size)
    generator = GridGenerator(WeightedSampler(config.base_weights),
                              config.grid.rows, config.grid.cols)
    grid_rng = make_stream(seed, 0)
    coin_rng = make_stream(derive_seed(seed, "approx"), 0)

    exact_total = approx_total = 0.0
    exact_hits = approx_hits = 0
    for _ in range(grids):
        grid = generator.generate(grid_rng)
        e = exact.evaluate(grid).payout
        a = approx.payout(grid, coin_rng)
        exact_total += e
        approx_total += a
        exact_hits += e > 0
        approx_hits += a > 0

    return ApproximationReport(
        grids=grids,
        exact_mean=exact_total / grids,
        approx_mean=approx_total / grids,
        exact_hit_rate=exact_hits / grids,
        approx_hit_rate=approx_hits / grids,
        tolerance=tolerance,
    )
