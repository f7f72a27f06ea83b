"""Simulator entities: Machine, Repairman, StatisticsAccumulator, SimulationState."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

import numpy as np

from repairsim.events import EventQueue


@dataclass(eq=False)
class Machine:
    """A machine that fails and gets repaired."""

    id: int
    broken: bool = False
    next_failure_time: float = 0.0  # only meaningful while operational
    failures: int = 0  # failure-arrival count, bumped on every failure

    @property
    def is_operational(self) -> bool:
        return not self.broken

    def fail(self) -> None:
        self.broken = True
        self.failures += 1

    def fixed(self) -> None:
        self.broken = False

    def __hash__(self) -> int:
        return hash(("machine", self.id))


@dataclass(eq=False)
class Repairman:
    """A repairman; idle iff assigned_machine is None."""

    id: int
    assigned_machine: Machine | None = None
    next_fix_time: float = 0.0  # only meaningful while assigned
    repairs_completed: int = 0

    @property
    def is_busy(self) -> bool:
        return self.assigned_machine is not None

    def assign(self, machine: Machine, fix_time: float) -> None:
        self.assigned_machine = machine
        self.next_fix_time = fix_time

    def release(self) -> Machine:
        """Clear the assignment and return the machine that was being fixed."""
        machine = self.assigned_machine
        if machine is None:
            raise RuntimeError(f"repairman {self.id} has no assigned machine")
        self.assigned_machine = None
        self.repairs_completed += 1
        return machine

    def __hash__(self) -> int:
        return hash(("repairman", self.id))


class StatisticsAccumulator:
    """
    Time-weighted occupancy of system states.

    state_time[k] is the simulated time spent with k operational machines,
    busy_time[b] the time spent with b busy repairmen.
    """

    def __init__(self, machine_count: int, repairman_count: int) -> None:
        self.machine_count = machine_count
        self.repairman_count = repairman_count
        self.state_time = np.zeros(machine_count + 1)
        self.busy_time = np.zeros(repairman_count + 1)

    def record(self, operational: int, busy: int, elapsed: float) -> None:
        if elapsed < 0:
            raise ValueError(f"elapsed time must be non-negative, got {elapsed}")
        self.state_time[operational] += elapsed
        self.busy_time[busy] += elapsed

    @property
    def total_time(self) -> float:
        return float(self.state_time.sum())

    def steady_state_probabilities(self, total_time: float) -> np.ndarray:
        if total_time <= 0:
            return np.zeros_like(self.state_time)
        return self.state_time / total_time

    def busy_probabilities(self, total_time: float) -> np.ndarray:
        if total_time <= 0:
            return np.zeros_like(self.busy_time)
        return self.busy_time / total_time

    def broken_count_probabilities(self, total_time: float) -> np.ndarray:
        """Same distribution indexed by broken count (c - operational)."""
        return self.steady_state_probabilities(total_time)[::-1].copy()

    def average_working(self, total_time: float) -> float:
        probs = self.steady_state_probabilities(total_time)
        return float(np.dot(np.arange(self.machine_count + 1), probs))

    def average_utilization(self, total_time: float) -> float:
        """Mean number of busy repairmen; busy counts never observed are skipped."""
        probs = self.busy_probabilities(total_time)
        used = self.busy_time > 0
        return float(np.dot(np.arange(self.repairman_count + 1)[used], probs[used]))


@dataclass
class SimulationState:
    """Everything one engine run owns and mutates."""

    stats: StatisticsAccumulator
    machines: list[Machine] = field(default_factory=list)
    repairmen: list[Repairman] = field(default_factory=list)
    events: EventQueue = field(default_factory=EventQueue)
    failed_machines: deque[Machine] = field(default_factory=deque)
    idle_repairmen: deque[Repairman] = field(default_factory=deque)
    current_time: float = 0.0
    machines_fixed: int = 0
    events_processed: int = 0

    @property
    def operational_count(self) -> int:
        return sum(1 for m in self.machines if not m.broken)

    @property
    def broken_count(self) -> int:
        return len(self.machines) - self.operational_count

    @property
    def busy_count(self) -> int:
        return len(self.repairmen) - len(self.idle_repairmen)
