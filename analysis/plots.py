"""Generate figures: state distribution vs theory, replication spread."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def plot_state_distribution(
    aggregate: dict[str, Any],
    theory: dict[str, Any] | None,
    output_path: str | Path,
) -> Path:
    """Bar chart of simulated P(k working) with 95% CI whiskers, analytic values as markers."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    probs = aggregate.get("steady_state_probabilities", {})
    states = sorted(probs)
    means = np.array([probs[k]["mean"] for k in states])
    lower = means - np.array([probs[k]["ci_lower"] for k in states])
    upper = np.array([probs[k]["ci_upper"] for k in states]) - means

    fig, ax = plt.subplots()
    ax.bar(states, means, yerr=[lower, upper], capsize=4, alpha=0.8, label="simulated")
    if theory is not None:
        expected = [theory["steady_state_probabilities"][k] for k in states]
        ax.plot(states, expected, "o", color="black", label="analytic")
    ax.set_xlabel("Working machines")
    ax.set_ylabel("Steady-state probability")
    ax.set_title("Machine repairman: state distribution")
    ax.set_xticks(states)
    ax.legend()
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def plot_replication_spread(
    csv_path: str | Path,
    output_path: str | Path | None = None,
    metric: str = "average_working",
    expected: float | None = None,
) -> Path:
    """Per-replication value of a metric, with the analytic value as a reference line."""
    df = pd.read_csv(csv_path)
    if metric not in df.columns:
        raise KeyError(f"column {metric!r} not in {csv_path}")
    if output_path is None:
        output_path = Path(csv_path).parent / f"{metric}_spread.png"
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots()
    x = df["seed"] if "seed" in df.columns else range(len(df))
    ax.scatter(x, df[metric], s=30, alpha=0.8, label=metric)
    ax.axhline(df[metric].mean(), linestyle="--", label="mean")
    if expected is not None:
        ax.axhline(expected, color="black", label="analytic")
    ax.set_xlabel("Seed")
    ax.set_ylabel(metric)
    ax.set_title(f"{metric} across replications")
    ax.legend()
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
