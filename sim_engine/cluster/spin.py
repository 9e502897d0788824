"""
QUANTUM CATS — Spin Evaluator

One spin = one grid → scatter tally, free-spin trigger, cluster payout.

Payout is the sum over every qualifying cluster of tier multiplier × the win
multiplier in effect. Cluster sizes come only from the exact flood fill.

Observer bonus: when a spin pays, with `observer_bonus.probability` the whole
payout is multiplied by `observer_bonus.multiplier` (reference: 5%, ×1.5).
The roll is only made for paying spins and only when an rng is supplied.
"""

from dataclasses import dataclass, field

from config.cluster_schema import SimulationConfig, Symbol
from sim_engine.cluster.clusters import ClusterEvaluator
from sim_engine.cluster.paytable import PayoutResolver


@dataclass
class ClusterWin:
    symbol: Symbol
    size: int
    pays: float     # tier multiplier × win multiplier


@dataclass
class SpinOutcome:
    payout: float
    scatter_count: int
    triggered_free_spins: bool
    multiplier: float = 1.0
    observer_bonus: bool = False
    wins: list[ClusterWin] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "payout": round(self.payout, 6),
            "scatters": self.scatter_count,
            "free_spins": self.triggered_free_spins,
            "multiplier": self.multiplier,
            "observer_bonus": self.observer_bonus,
            "wins": [{"symbol": w.symbol.value, "size": w.size, "pays": round(w.pays, 6)}
                     for w in self.wins],
        }


class SpinEvaluator:

    def __init__(self, clusters: ClusterEvaluator, resolver: PayoutResolver,
                 scatter_trigger: int = 3, bonus_probability: float = 0.0,
                 bonus_multiplier: float = 1.0, scatter=Symbol.SC):
        self.clusters = clusters
        self.resolver = resolver
        self.scatter_trigger = scatter_trigger
        self.bonus_probability = bonus_probability
        self.bonus_multiplier = bonus_multiplier
        self.scatter = scatter

    @classmethod
    def from_config(cls, config: SimulationConfig) -> "SpinEvaluator":
        return cls(
            clusters=ClusterEvaluator(min_size=config.min_cluster_size),
            resolver=PayoutResolver(config.paytable),
            scatter_trigger=config.scatter_trigger,
            bonus_probability=config.observer_bonus.probability,
            bonus_multiplier=config.observer_bonus.multiplier,
        )

    def evaluate(self, grid, multiplier: float = 1.0, in_free_spins: bool = False,
                 rng=None) -> SpinOutcome:
        scatters = grid.count(self.scatter)
        wins = []
        total = 0.0
        for cluster in self.clusters.find_clusters(grid):
            pays = self.resolver.resolve(cluster.symbol, cluster.size) * multiplier
            if pays > 0:
                wins.append(ClusterWin(cluster.symbol, cluster.size, pays))
                total += pays

        bonus = False
        if total > 0 and rng is not None and self.bonus_probability > 0:
            if rng.random() < self.bonus_probability:
                total *= self.bonus_multiplier
                bonus = True

        return SpinOutcome(
            payout=total,
            scatter_count=scatters,
            triggered_free_spins=(not in_free_spins) and scatters >= self.scatter_trigger,
            multiplier=multiplier,
            observer_bonus=bonus,
            wins=wins,
        )

    def spin(self, generator, rng, multiplier: float = 1.0,
             in_free_spins: bool = False) -> SpinOutcome:
        """Draw a fresh grid and evaluate it."""
        return self.evaluate(generator.generate(rng), multiplier, in_free_spins, rng)
