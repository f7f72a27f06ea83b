#!/usr/bin/env python3
"""
Run K independent replications, compare against the analytic steady state,
and write replications.csv, summary.json and figures.

Usage:
  python scripts/run_replications.py --replications 20 --target 20000
  python scripts/run_replications.py --config config/default.yaml --results_dir results/run_0
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from analysis.metrics import compare_with_theory
from analysis.plots import plot_replication_spread, plot_state_distribution
from analysis.run_replications import load_replication_settings, run_study
from analysis.theory import analytic_steady_state
from repairsim.config import load_config
from repairsim.errors import InvalidArgumentError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replication study for the machine repairman simulation")
    parser.add_argument("--config", type=str, default=None, help="YAML config (default: config/default.yaml)")
    parser.add_argument("--replications", type=int, default=None, help="Number of replications K")
    parser.add_argument("--base_seed", type=int, default=None, help="Seed of the first replication")
    parser.add_argument("--target", type=int, default=None, help="Repairs per replication")
    parser.add_argument("--lambda", dest="failure_rate", type=float, default=None)
    parser.add_argument("--mu", dest="repair_rate", type=float, default=None)
    parser.add_argument("--machines", type=int, default=None)
    parser.add_argument("--repairmen", type=int, default=None)
    parser.add_argument("--results_dir", type=str, default="results", help="Output directory (default: results)")
    parser.add_argument("--no-plots", action="store_true", help="Skip figures")
    args = parser.parse_args(argv)

    settings = load_replication_settings(args.config)
    K = args.replications if args.replications is not None else int(settings["count"])
    base_seed = args.base_seed if args.base_seed is not None else int(settings["base_seed"])
    if K <= 0:
        parser.error("--replications must be positive")
    if base_seed < 0:
        parser.error("--base_seed must be non-negative")
    try:
        config = load_config(args.config).with_overrides(
            target_fixed_count=args.target,
            failure_rate=args.failure_rate,
            repair_rate=args.repair_rate,
            machine_count=args.machines,
            repairman_count=args.repairmen,
        )
    except InvalidArgumentError as e:
        parser.error(str(e))

    results_dir = Path(args.results_dir)
    print(
        f"Running {K} replications: c={config.machine_count} r={config.repairman_count} "
        f"lambda={config.failure_rate} mu={config.repair_rate} target={config.target_fixed_count}"
    )
    df, aggregate = run_study(config, K, base_seed, results_dir)
    theory = analytic_steady_state(
        config.machine_count, config.repairman_count, config.failure_rate, config.repair_rate
    )
    comparison = compare_with_theory(aggregate, theory)

    print(f"{'quantity':<28}{'simulated':>12}{'95% CI':>26}{'analytic':>12}")
    for row in comparison:
        ci = f"[{row['ci_lower']:.4f}, {row['ci_upper']:.4f}]"
        flag = "" if row["covered"] else "  *"
        print(f"{row['quantity']:<28}{row['simulated']:>12.4f}{ci:>26}{row['analytic']:>12.4f}{flag}")

    summary = {
        "config": config.model_dump(),
        "replications": K,
        "base_seed": base_seed,
        "aggregate": aggregate,
        "analytic": theory,
        "comparison": comparison,
    }
    with open(results_dir / "summary.json", "w") as f:
        json.dump(summary, f, indent=2, default=str)
    print(f"Saved {results_dir / 'replications.csv'} and {results_dir / 'summary.json'}")

    if not args.no_plots:
        p1 = plot_state_distribution(aggregate, theory, results_dir / "state_distribution.png")
        p2 = plot_replication_spread(
            results_dir / "replications.csv", metric="average_working", expected=theory["average_working"]
        )
        print(f"Saved figures: {p1}, {p2}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
