"""
QUANTUM CATS — Simulation Statistics

SimulationResult is both the running accumulator and the final record handed
to reporting. Per-spin payouts are folded in with Welford's update; batch
results merge with the pairwise (count, mean, M2) formula, so variance is
derived exactly once, after the last merge, and never averaged across
batches.
"""

import math
from dataclasses import dataclass, field

from config.cluster_schema import ConfigErrorKind, ConfigurationError

WIN_BUCKETS = ("0x", "0.01-1x", "1-5x", "5-20x", "20-100x", "100-500x", "500x+")


def categorize_win(payout: float) -> str:
    """Bucket a payout (in stake multiples) for the win distribution."""
    if payout <= 0:
        return "0x"
    if payout < 1:
        return "0.01-1x"
    if payout < 5:
        return "1-5x"
    if payout < 20:
        return "5-20x"
    if payout < 100:
        return "20-100x"
    if payout < 500:
        return "100-500x"
    return "500x+"


@dataclass
class SimulationResult:
    """Aggregate statistics for one run (or one batch of it)."""
    total_spins: int = 0
    total_wagered: float = 0.0
    total_won: float = 0.0
    base_won: float = 0.0
    free_spin_won: float = 0.0
    hits: int = 0                      # spins with payout > 0
    max_win: float = 0.0
    fs_triggered: int = 0
    fs_spins_played: int = 0
    retriggers: int = 0
    jackpots: int = 0
    observer_bonuses: int = 0
    capped_sessions: int = 0
    win_distribution: dict = field(default_factory=lambda: {b: 0 for b in WIN_BUCKETS})

    # running moments of per-spin payout
    mean_win: float = 0.0
    m2: float = 0.0

    # derived by finalize()
    rtp: float = 0.0
    hit_rate: float = 0.0
    variance: float = 0.0
    std_dev: float = 0.0
    finalized: bool = False

    # run metadata
    seed: int = 0
    workers: int = 1
    duration_seconds: float = 0.0

    def record(self, payout: float, base_payout: float = None, session=None,
               wager: float = 1.0, observer_bonus: bool = False) -> None:
        """Fold one base spin (including any free-spin session it triggered)."""
        self.total_spins += 1
        self.total_wagered += wager
        self.total_won += payout
        if base_payout is None:
            base_payout = payout
        self.base_won += base_payout
        if payout > 0:
            self.hits += 1
        if payout > self.max_win:
            self.max_win = payout
        self.observer_bonuses += observer_bonus
        self.win_distribution[categorize_win(payout)] += 1

        if session is not None:
            self.fs_triggered += 1
            self.free_spin_won += session.total_win
            self.fs_spins_played += session.spins_played
            self.retriggers += session.retriggers
            self.jackpots += session.jackpot_triggered
            self.observer_bonuses += session.observer_bonuses
            self.capped_sessions += session.capped

        delta = payout - self.mean_win
        self.mean_win += delta / self.total_spins
        self.m2 += delta * (payout - self.mean_win)

    def merge(self, other: "SimulationResult") -> "SimulationResult":
        """Combine another partial result into this one (associative)."""
        n_a, n_b = self.total_spins, other.total_spins
        n = n_a + n_b
        if n_b:
            delta = other.mean_win - self.mean_win
            self.m2 += other.m2 + delta * delta * n_a * n_b / n
            self.mean_win += delta * n_b / n

        self.total_spins = n
        self.total_wagered += other.total_wagered
        self.total_won += other.total_won
        self.base_won += other.base_won
        self.free_spin_won += other.free_spin_won
        self.hits += other.hits
        self.max_win = max(self.max_win, other.max_win)
        self.fs_triggered += other.fs_triggered
        self.fs_spins_played += other.fs_spins_played
        self.retriggers += other.retriggers
        self.jackpots += other.jackpots
        self.observer_bonuses += other.observer_bonuses
        self.capped_sessions += other.capped_sessions
        for bucket, count in other.win_distribution.items():
            self.win_distribution[bucket] = self.win_distribution.get(bucket, 0) + count
        self.finalized = False
        return self

    def finalize(self) -> "SimulationResult":
        if self.total_spins <= 0 or self.total_wagered <= 0:
            raise ConfigurationError(ConfigErrorKind.INVALID_SPIN_COUNT,
                                     "cannot finalize a run with no spins")
        self.rtp = self.total_won / self.total_wagered * 100
        self.hit_rate = self.hits / self.total_spins * 100
        self.variance = self.m2 / self.total_spins
        self.std_dev = math.sqrt(self.variance)
        self.finalized = True
        return self

    @property
    def fs_trigger_rate(self) -> float:
        return self.fs_triggered / self.total_spins * 100 if self.total_spins else 0.0

    def to_dict(self) -> dict:
        return {
            "total_spins": self.total_spins,
            "total_wagered": round(self.total_wagered, 2),
            "total_won": round(self.total_won, 4),
            "rtp_pct": round(self.rtp, 4),
            "hit_rate_pct": round(self.hit_rate, 4),
            "max_win": round(self.max_win, 2),
            "variance": round(self.variance, 4),
            "std_dev": round(self.std_dev, 4),
            "free_spins": {
                "triggered": self.fs_triggered,
                "trigger_rate_pct": round(self.fs_trigger_rate, 4),
                "spins_played": self.fs_spins_played,
                "retriggers": self.retriggers,
                "won": round(self.free_spin_won, 4),
                "jackpots": self.jackpots,
                "capped_sessions": self.capped_sessions,
            },
            "base_won": round(self.base_won, 4),
            "observer_bonuses": self.observer_bonuses,
            "distribution": dict(self.win_distribution),
            "seed": self.seed,
            "workers": self.workers,
            "duration_s": round(self.duration_seconds, 2),
        }
