#!/usr/bin/env python3
"""
Run one machine repairman simulation and print the report.

Usage:
  python scripts/run_simulation.py
  python scripts/run_simulation.py --machines 6 --repairmen 2 --lambda 0.3 --mu 0.8 --seed 7
  python scripts/run_simulation.py --target 20 --trace 20 --check-invariants
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from repairsim.config import load_config
from repairsim.errors import InvalidArgumentError
from repairsim.runner import SimulationEngine, format_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Machine repairman discrete-event simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=None, help="YAML config (default: config/default.yaml)")
    parser.add_argument("--target", type=int, default=None, help="Stop after this many repairs")
    parser.add_argument("--lambda", dest="failure_rate", type=float, default=None, help="Failure rate per machine")
    parser.add_argument("--mu", dest="repair_rate", type=float, default=None, help="Repair rate per repairman")
    parser.add_argument("--machines", type=int, default=None, help="Number of machines")
    parser.add_argument("--repairmen", type=int, default=None, help="Number of repairmen")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--trace", type=int, default=0, help="Print the first N processed events")
    parser.add_argument("--check-invariants", action="store_true", help="Validate state after every event")
    parser.add_argument("--json", type=str, default=None, help="Also write the result to this JSON file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            target_fixed_count=args.target,
            failure_rate=args.failure_rate,
            repair_rate=args.repair_rate,
            machine_count=args.machines,
            repairman_count=args.repairmen,
            seed=args.seed,
        )
        engine = SimulationEngine.from_config(config)
    except InvalidArgumentError as e:
        parser.error(str(e))

    while not engine.finished:
        record = engine.step()
        if engine.state.events_processed <= args.trace:
            print(
                f"t={record.time:.4f} {record.event_type.value} machine={record.machine_id} "
                f"repairman={record.repairman_id} queued={record.queued} fixed={record.machines_fixed}"
            )
        if args.check_invariants:
            errors = engine.check_invariants()
            if errors:
                raise RuntimeError(f"invariant violated at t={record.time}: {errors}")

    result = engine.result()
    print(format_report(result))

    if args.json:
        out = Path(args.json)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"Saved result to {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
