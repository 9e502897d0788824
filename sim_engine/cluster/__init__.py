"""
QUANTUM CATS — Cluster-Pays Math Engine

Monte Carlo validation of a 7x7 cluster-pays slot: weighted grids, exact
flood-fill clusters with wild substitution, tiered payouts, free-spin modes
with retriggers and a multiverse jackpot, and long-run statistics.

Usage:
    from sim_engine.cluster import SimulationDriver, default_config
    config = default_config()
    result = SimulationDriver(config, seed=42, workers=4).run(1_000_000)
    print(result.rtp, result.hit_rate, result.std_dev)
"""

from config.cluster_schema import (
    ConfigErrorKind, ConfigurationError, SimulationConfig, Symbol,
    default_config, load_config, validate_config,
)
from sim_engine.cluster.clusters import Cluster, ClusterEvaluator
from sim_engine.cluster.driver import ClusterGame, SimulationDriver, run_batch, simulate
from sim_engine.cluster.freespins import FreeSpinRunner, FreeSpinSession, SessionPlan, SessionState
from sim_engine.cluster.grid import Grid, GridGenerator
from sim_engine.cluster.paytable import PayoutResolver
from sim_engine.cluster.sampler import WeightedSampler
from sim_engine.cluster.spin import SpinEvaluator, SpinOutcome
from sim_engine.cluster.stats import SimulationResult, categorize_win

__all__ = [
    "Cluster", "ClusterEvaluator", "ClusterGame", "ConfigErrorKind", "ConfigurationError",
    "FreeSpinRunner", "FreeSpinSession", "Grid", "GridGenerator", "PayoutResolver",
    "SessionPlan", "SessionState", "SimulationConfig", "SimulationDriver", "SimulationResult",
    "SpinEvaluator", "SpinOutcome", "Symbol", "WeightedSampler", "categorize_win",
    "default_config", "load_config", "run_batch", "simulate", "validate_config",
]
