"""Closed-form steady state of the finite-source (machine repairman) queue."""

from __future__ import annotations

from typing import Any

import numpy as np

from repairsim.errors import InvalidArgumentError
from repairsim.processes import check_rate


def broken_count_distribution(
    machine_count: int, repairman_count: int, failure_rate: float, repair_rate: float
) -> np.ndarray:
    """
    P(n machines broken), n = 0..c, for the M/M/r//c birth-death chain.

    Up-rate from n broken is (c - n) * lambda, down-rate from n is
    min(n, r) * mu.
    """
    if machine_count <= 0 or repairman_count <= 0:
        raise InvalidArgumentError("machine_count and repairman_count must be positive")
    lam = check_rate(failure_rate, "failure_rate")
    mu = check_rate(repair_rate, "repair_rate")

    weights = np.ones(machine_count + 1)
    for n in range(1, machine_count + 1):
        weights[n] = weights[n - 1] * (machine_count - n + 1) * lam / (min(n, repairman_count) * mu)
    return weights / weights.sum()


def analytic_steady_state(
    machine_count: int, repairman_count: int, failure_rate: float, repair_rate: float
) -> dict[str, Any]:
    """
    Analytic counterparts of the simulation outputs.

    Probabilities are keyed by operational count, like SimulationResult.
    """
    broken = broken_count_distribution(machine_count, repairman_count, failure_rate, repair_rate)
    n = np.arange(machine_count + 1)
    busy = np.minimum(n, repairman_count)
    mean_broken = float(np.dot(n, broken))
    mean_busy = float(np.dot(busy, broken))
    throughput = mean_busy * repair_rate  # repairs per unit time
    mean_waiting = float(np.dot(np.maximum(n - repairman_count, 0), broken))
    return {
        "steady_state_probabilities": {
            k: float(broken[machine_count - k]) for k in range(machine_count + 1)
        },
        "average_working": machine_count - mean_broken,
        "average_broken": mean_broken,
        "average_utilization": mean_busy,
        "utilization_per_repairman": mean_busy / repairman_count,
        "average_waiting": mean_waiting,
        "repair_throughput": throughput,
        # Little's law on the broken population
        "mean_downtime": mean_broken / throughput if throughput > 0 else float("inf"),
    }
