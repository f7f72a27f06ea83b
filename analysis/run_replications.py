"""Run K independent replications of one configuration and tabulate them."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from repairsim.config import DEFAULT_CONFIG_PATH, SimulationConfig
from repairsim.runner import SimulationEngine, SimulationResult
from analysis.metrics import aggregate_results


def load_replication_settings(config_path: str | Path | None = None) -> dict[str, Any]:
    """Read the `replications:` section (count, base_seed) from the YAML config."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings: dict[str, Any] = {"count": 20, "base_seed": 0}
    if path.exists():
        with open(path) as f:
            cfg = yaml.safe_load(f) or {}
        settings.update(cfg.get("replications", {}) or {})
    return settings


def run_replications(
    config: SimulationConfig,
    K: int,
    base_seed: int = 0,
) -> list[SimulationResult]:
    """Run K replications with seeds base_seed .. base_seed+K-1 (one engine each)."""
    results: list[SimulationResult] = []
    for i in range(K):
        engine = SimulationEngine.from_config(config, seed=base_seed + i)
        results.append(engine.run())
    return results


def results_to_frame(results: list[SimulationResult]) -> pd.DataFrame:
    """One row per replication."""
    return pd.DataFrame([r.to_dict() for r in results])


def run_study(
    config: SimulationConfig,
    K: int,
    base_seed: int = 0,
    results_dir: str | Path | None = None,
) -> tuple[pd.DataFrame, dict[str, Any]]:
    """
    Run K replications, aggregate them, and (if results_dir is given) write
    replications.csv there. Returns (per-replication frame, aggregate).
    """
    results = run_replications(config, K, base_seed)
    df = results_to_frame(results)
    aggregate = aggregate_results(results)
    if results_dir is not None:
        out = Path(results_dir)
        out.mkdir(parents=True, exist_ok=True)
        df.to_csv(out / "replications.csv", index=False)
    return df, aggregate
