"""Aggregation of replication results and comparison with the analytic solution."""

from __future__ import annotations

import math
from typing import Any

import numpy as np
import scipy.stats

from repairsim.runner import SimulationResult

SCALAR_METRICS = (
    "total_time",
    "average_working",
    "average_utilization",
    "utilization_per_repairman",
)


def confidence_interval_95(values: list[float]) -> tuple[float, float]:
    """Return (lower, upper) 95% CI for the mean, Student t with n-1 dof."""
    if len(values) < 2:
        return (float(values[0]), float(values[0])) if values else (0.0, 0.0)
    n = len(values)
    mean = float(np.mean(values))
    se = float(np.std(values, ddof=1)) / math.sqrt(n)
    t_val = float(scipy.stats.t.ppf(0.975, df=n - 1))
    return (mean - t_val * se, mean + t_val * se)


def summarize(values: list[float]) -> dict[str, float]:
    lower, upper = confidence_interval_95(values)
    return {
        "mean": float(np.mean(values)) if values else 0.0,
        "std": float(np.std(values, ddof=1)) if len(values) > 1 else 0.0,
        "ci_lower": lower,
        "ci_upper": upper,
    }


def aggregate_results(results: list[SimulationResult]) -> dict[str, Any]:
    """
    Aggregate K replications of the same configuration.

    Returns {"n": K, "metrics": {name: summary}, "steady_state_probabilities":
    {k: summary}} where each summary has mean/std/ci_lower/ci_upper.
    """
    if not results:
        return {"n": 0, "metrics": {}, "steady_state_probabilities": {}}

    metrics = {name: summarize([float(getattr(r, name)) for r in results]) for name in SCALAR_METRICS}
    states = sorted(results[0].steady_state_probabilities)
    probs = {
        k: summarize([r.steady_state_probabilities.get(k, 0.0) for r in results]) for k in states
    }
    return {"n": len(results), "metrics": metrics, "steady_state_probabilities": probs}


def compare_with_theory(aggregate: dict[str, Any], theory: dict[str, Any]) -> list[dict[str, Any]]:
    """
    One row per quantity: simulated mean and CI next to the analytic value,
    with covered=True when the analytic value falls inside the CI.
    """
    rows: list[dict[str, Any]] = []

    def row(name: str, summary: dict[str, float], expected: float) -> dict[str, Any]:
        return {
            "quantity": name,
            "simulated": summary["mean"],
            "ci_lower": summary["ci_lower"],
            "ci_upper": summary["ci_upper"],
            "analytic": expected,
            "abs_error": abs(summary["mean"] - expected),
            "covered": summary["ci_lower"] <= expected <= summary["ci_upper"],
        }

    for name in ("average_working", "average_utilization", "utilization_per_repairman"):
        if name in aggregate["metrics"]:
            rows.append(row(name, aggregate["metrics"][name], theory[name]))
    for k, summary in aggregate["steady_state_probabilities"].items():
        rows.append(row(f"p_working_{k}", summary, theory["steady_state_probabilities"][k]))
    return rows
