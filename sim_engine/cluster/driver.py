"""
QUANTUM CATS — Simulation Driver

Runs N independent base spins (1 unit wager each), plays a free-spin session
whenever a base spin triggers one, and folds everything into a
SimulationResult.

Parallel runs split N into `workers` batches. Every batch builds its own game
objects and its own random stream (seeded from base seed + batch index), runs
to completion, and returns an unfinalized partial. Partials are merged in
batch order and finalized once, so a fixed (seed, workers) pair always
reproduces the same numbers.

Usage:
    from sim_engine.cluster import SimulationDriver, default_config
    driver = SimulationDriver(default_config(), seed=42, workers=4)
    result = driver.run(1_000_000)
    print(result.to_dict())
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor

from config.cluster_schema import (
    SimulationConfig, default_config, validate_config,
)
from sim_engine.cluster.freespins import FreeSpinRunner
from sim_engine.cluster.grid import GridGenerator
from sim_engine.cluster.rng import make_stream, partition
from sim_engine.cluster.sampler import WeightedSampler
from sim_engine.cluster.spin import SpinEvaluator
from sim_engine.cluster.stats import SimulationResult

logger = logging.getLogger("quantumcats.driver")

EXECUTORS = ("process", "thread")


class ClusterGame:
    """Everything needed to play one base spin plus its free spins."""

    def __init__(self, config: SimulationConfig):
        rows, cols = config.grid.rows, config.grid.cols
        self.evaluator = SpinEvaluator.from_config(config)
        self.base_generator = GridGenerator(WeightedSampler(config.base_weights), rows, cols)
        self.fs_generator = GridGenerator(WeightedSampler(config.free_spin_weights), rows, cols)
        self.free_spins = FreeSpinRunner(config.free_spins, self.evaluator, self.fs_generator)

    def play(self, rng):
        """One wager: returns (total payout, base outcome, session or None)."""
        outcome = self.evaluator.spin(self.base_generator, rng, 1.0, in_free_spins=False)
        session = None
        payout = outcome.payout
        if outcome.triggered_free_spins:
            session = self.free_spins.run(rng)
            payout += session.total_win
        return payout, outcome, session


def run_batch(config: SimulationConfig, spins: int, seed: int, index: int = 0) -> SimulationResult:
    """Play `spins` wagers on stream `index`; the result is not finalized."""
    game = ClusterGame(config)
    rng = make_stream(seed, index)
    partial = SimulationResult(seed=seed)
    for _ in range(spins):
        payout, outcome, session = game.play(rng)
        partial.record(payout, outcome.payout, session, observer_bonus=outcome.observer_bonus)
    logger.debug(f"Batch {index}: {spins:,} spins, won {partial.total_won:.2f}")
    return partial


class SimulationDriver:

    def __init__(self, config: SimulationConfig, seed: int = 42, workers: int = 1,
                 executor: str = "process"):
        if executor not in EXECUTORS:
            raise ValueError(f"Unknown executor: {executor}. Available: {list(EXECUTORS)}")
        self.config = config
        self.seed = seed
        self.workers = max(1, workers)
        self.executor = executor

    def run(self, spins: int = None) -> SimulationResult:
        """Validate, simulate, merge, finalize. Aborts whole on any failure."""
        spins = self.config.spins if spins is None else spins
        # validate the count that will actually run, not the stored default
        validate_config(self.config.model_copy(update={"spins": spins}))

        sizes = partition(spins, self.workers)
        logger.info(f"Simulating {spins:,} spins of {self.config.name} "
                    f"(seed={self.seed}, batches={len(sizes)}, executor={self.executor})")

        t0 = time.time()
        if len(sizes) == 1:
            partials = [run_batch(self.config, sizes[0], self.seed, 0)]
        else:
            pool_cls = ProcessPoolExecutor if self.executor == "process" else ThreadPoolExecutor
            with pool_cls(max_workers=len(sizes)) as pool:
                futures = [pool.submit(run_batch, self.config, n, self.seed, i)
                           for i, n in enumerate(sizes)]
                partials = [f.result() for f in futures]

        result = SimulationResult(seed=self.seed, workers=len(sizes))
        for partial in partials:
            result.merge(partial)
        result.finalize()
        result.duration_seconds = time.time() - t0

        logger.info(f"Done in {result.duration_seconds:.1f}s: RTP={result.rtp:.4f}% "
                    f"hit={result.hit_rate:.2f}% max={result.max_win:.2f}x "
                    f"fs={result.fs_triggered:,}")
        if result.capped_sessions:
            logger.warning(f"{result.capped_sessions} free-spin sessions hit the "
                           f"{self.config.free_spins.max_session_spins}-spin cap")
        return result


def simulate(config: SimulationConfig = None, spins: int = None, seed: int = 42,
             workers: int = 1, executor: str = "process") -> SimulationResult:
    """One-call convenience wrapper around SimulationDriver."""
    return SimulationDriver(config or default_config(), seed=seed, workers=workers,
                            executor=executor).run(spins)
