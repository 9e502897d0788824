#!/usr/bin/env python3
"""
QUANTUM CATS — Simulation CLI

Starts runs and renders the finished result records. All math lives in
sim_engine.cluster; this file only parses arguments and prints.

Usage:
    python -m tools.cluster_cli                         # 10k / 100k / 1M sweep
    python -m tools.cluster_cli --spins 500000 --workers 4
    python -m tools.cluster_cli --config my_game.json --json out.json
    python -m tools.cluster_cli --dump-config
    python -m tools.cluster_cli --compare-approx 50000
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.cluster_schema import (
    ConfigurationError, default_config, load_config, session_profile,
)
from config.settings import SimSettings, configure_logging
from sim_engine.cluster.approx import compare_evaluators
from sim_engine.cluster.driver import SimulationDriver

console = Console()


def spin_counts(requested, config, from_file: bool = False, env_spins: int = 0) -> list:
    """Spin counts to run: --spins, then SIM_SPINS, then a config file's own count, else the sweep."""
    if requested:
        return list(requested)
    if env_spins > 0:
        return [env_spins]
    if from_file:
        return [config.spins]
    return list(SimSettings.SWEEP_SIZES)


def render_result(result) -> None:
    stats = Table(show_header=False, box=None)
    stats.add_row("RTP", f"{result.rtp:.2f}%")
    stats.add_row("Hit Rate", f"{result.hit_rate:.2f}%")
    stats.add_row("Max Win", f"{result.max_win:.2f}x")
    stats.add_row("Std Dev", f"{result.std_dev:.2f}")
    stats.add_row("FS Triggered", f"{result.fs_triggered:,} ({result.fs_trigger_rate:.3f}%)")
    stats.add_row("Jackpots", f"{result.jackpots:,}")

    dist = Table(title="Win Distribution")
    dist.add_column("Bucket")
    dist.add_column("Spins", justify="right")
    dist.add_column("%", justify="right")
    for bucket, count in result.win_distribution.items():
        dist.add_row(bucket, f"{count:,}", f"{count / result.total_spins * 100:.2f}")

    console.print(Panel(stats, title=f"Spins: {result.total_spins:,} "
                                     f"({result.duration_seconds:.1f}s)"))
    console.print(dist)


def main():
    parser = argparse.ArgumentParser(description="Quantum Cats cluster-pays simulator")
    parser.add_argument("--spins", type=int, nargs="+", default=None,
                        help="Spin counts to run (default: SIM_SPINS, the config's spins, "
                             "or a 10k/100k/1M sweep)")
    parser.add_argument("--seed", type=int, default=SimSettings.SEED)
    parser.add_argument("--workers", type=int, default=SimSettings.WORKERS)
    parser.add_argument("--executor", choices=["process", "thread"], default=SimSettings.EXECUTOR)
    parser.add_argument("--config", type=Path, default=SimSettings.config_path(),
                        help="JSON game config (default: built-in reference game)")
    parser.add_argument("--json", type=str, default=None, help="Write result records to this file")
    parser.add_argument("--dump-config", action="store_true")
    parser.add_argument("--compare-approx", type=int, metavar="GRIDS", default=0,
                        help="Compare the count-based shortcut against exact clusters")
    args = parser.parse_args()

    configure_logging()

    try:
        config = load_config(args.config) if args.config else default_config()
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(2)

    if args.dump_config:
        print(config.model_dump_json(indent=2))
        print(json.dumps(session_profile(config), indent=2))
        return

    if args.compare_approx:
        report = compare_evaluators(config, grids=args.compare_approx, seed=args.seed)
        console.print_json(json.dumps(report.to_dict()))
        return

    records = []
    counts = spin_counts(args.spins, config, from_file=bool(args.config), env_spins=SimSettings.SPINS)
    for n in counts:
        console.print(f"▶ Running {n:,} spins simulation...")
        try:
            result = SimulationDriver(config, seed=args.seed, workers=args.workers,
                                      executor=args.executor).run(n)
        except ConfigurationError as e:
            console.print(f"[red]❌ {e}[/red]")
            sys.exit(2)
        render_result(result)
        records.append(result.to_dict())

    if args.json:
        Path(args.json).write_text(json.dumps(records, indent=2))
        console.print(f"✅ Results written to {args.json}")


if __name__ == "__main__":
    main()
