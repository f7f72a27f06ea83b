"""Simulation runner: discrete-event loop for the machine repairman problem."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from repairsim.config import SimulationConfig
from repairsim.entities import Machine, Repairman, SimulationState, StatisticsAccumulator
from repairsim.errors import InvalidArgumentError
from repairsim.events import Event, EventType
from repairsim.processes import ExponentialSampler, check_rate, make_rng


def _check_count(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidArgumentError(f"{name} must be positive, got {value}")
    return value


def _check_seed(seed: int | None) -> int | None:
    if seed is None:
        return None
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise InvalidArgumentError(f"seed must be an integer, got {seed!r}")
    if seed < 0:
        raise InvalidArgumentError(f"seed must be non-negative, got {seed}")
    return seed


@dataclass
class StepRecord:
    """What a single processed event did."""

    time: float
    previous_time: float
    event_type: EventType
    machine_id: int  # machine that failed or was repaired
    repairman_id: int | None  # repairman that took the failure or finished the repair
    queued: bool  # failed machine joined the waiting line
    assigned_machine_id: int | None  # machine whose repair started in this step
    machines_fixed: int
    operational_before: int
    busy_before: int


@dataclass
class SimulationResult:
    """Outcome of a finished run; probabilities are keyed by operational count."""

    machines_fixed: int
    total_time: float
    average_working: float
    average_utilization: float  # mean number of busy repairmen
    utilization_per_repairman: float
    steady_state_probabilities: dict[int, float]
    busy_probabilities: dict[int, float]
    events_processed: int
    machine_count: int
    repairman_count: int
    failure_rate: float
    repair_rate: float
    seed: int | None = None
    state_time: dict[int, float] = field(default_factory=dict)

    def broken_count_probabilities(self) -> dict[int, float]:
        return {
            self.machine_count - k: p for k, p in sorted(self.steady_state_probabilities.items())
        }

    def to_dict(self) -> dict[str, Any]:
        """Flat dict (one column per state probability) for CSV/JSON export."""
        d: dict[str, Any] = {
            "seed": self.seed,
            "machine_count": self.machine_count,
            "repairman_count": self.repairman_count,
            "failure_rate": self.failure_rate,
            "repair_rate": self.repair_rate,
            "machines_fixed": self.machines_fixed,
            "total_time": self.total_time,
            "events_processed": self.events_processed,
            "average_working": self.average_working,
            "average_utilization": self.average_utilization,
            "utilization_per_repairman": self.utilization_per_repairman,
        }
        for k, p in sorted(self.steady_state_probabilities.items()):
            d[f"p_working_{k}"] = p
        for b, q in sorted(self.busy_probabilities.items()):
            d[f"p_busy_{b}"] = q
        return d


class SimulationEngine:
    """
    Machine repairman discrete-event simulation.

    c machines fail at rate lambda; r repairmen fix them at rate mu, first
    come first served. Each engine owns its own SimulationState and random
    generator, so several engines can run side by side.

    failure_sampler / repair_sampler replace the exponential draws (anything
    with a sample(rate) method), e.g. FixedSequenceSampler in tests.
    """

    def __init__(
        self,
        machine_count: int,
        repairman_count: int,
        failure_rate: float,
        repair_rate: float,
        target_fixed_count: int,
        seed: int | None = None,
        failure_sampler: Any = None,
        repair_sampler: Any = None,
    ) -> None:
        self.machine_count = _check_count(machine_count, "machine_count")
        self.repairman_count = _check_count(repairman_count, "repairman_count")
        self.target_fixed_count = _check_count(target_fixed_count, "target_fixed_count")
        self.failure_rate = check_rate(failure_rate, "failure_rate")
        self.repair_rate = check_rate(repair_rate, "repair_rate")
        self.seed = _check_seed(seed)

        if failure_sampler is None or repair_sampler is None:
            shared = ExponentialSampler(make_rng(seed))
            if failure_sampler is None:
                failure_sampler = shared
            if repair_sampler is None:
                repair_sampler = shared
        self.failure_sampler = failure_sampler
        self.repair_sampler = repair_sampler

        self.state = SimulationState(
            machines=[Machine(id=i) for i in range(self.machine_count)],
            repairmen=[Repairman(id=i) for i in range(self.repairman_count)],
            stats=StatisticsAccumulator(self.machine_count, self.repairman_count),
        )
        self._initialize()

    @classmethod
    def from_config(cls, config: SimulationConfig, **kwargs: Any) -> SimulationEngine:
        seed = kwargs.pop("seed", config.seed)
        return cls(
            machine_count=config.machine_count,
            repairman_count=config.repairman_count,
            failure_rate=config.failure_rate,
            repair_rate=config.repair_rate,
            target_fixed_count=config.target_fixed_count,
            seed=seed,
            **kwargs,
        )

    def _initialize(self) -> None:
        state = self.state
        for machine in state.machines:
            self._schedule_failure(machine)
        for repairman in state.repairmen:
            state.idle_repairmen.append(repairman)

    def _schedule_failure(self, machine: Machine) -> None:
        machine.next_failure_time = self.state.current_time + self.failure_sampler.sample(
            self.failure_rate
        )
        self.state.events.push(Event.machine_failure(machine))

    def _start_repair(self, repairman: Repairman, machine: Machine) -> None:
        fix_time = self.state.current_time + self.repair_sampler.sample(self.repair_rate)
        repairman.assign(machine, fix_time)
        self.state.events.push(Event.repair_completion(repairman))

    @property
    def finished(self) -> bool:
        return self.state.machines_fixed >= self.target_fixed_count

    def step(self) -> StepRecord:
        """Pop the earliest event, apply its transition and accumulate statistics."""
        state = self.state
        operational_before = state.operational_count
        busy_before = state.busy_count
        previous_time = state.current_time

        ev = state.events.pop_min()
        state.current_time = ev.time
        state.events_processed += 1

        repairman_id: int | None = None
        assigned_machine_id: int | None = None
        queued = False

        if ev.event_type == EventType.MACHINE_FAILURE:
            machine: Machine = ev.entity
            machine.fail()
            if state.idle_repairmen:
                repairman = state.idle_repairmen.popleft()
                self._start_repair(repairman, machine)
                repairman_id = repairman.id
                assigned_machine_id = machine.id
            else:
                state.failed_machines.append(machine)
                queued = True

        elif ev.event_type == EventType.REPAIR_COMPLETION:
            repairman = ev.entity
            repairman_id = repairman.id
            machine = repairman.release()
            machine.fixed()
            self._schedule_failure(machine)

            # Work-conserving: take the next waiting machine without going idle
            if state.failed_machines:
                next_machine = state.failed_machines.popleft()
                self._start_repair(repairman, next_machine)
                assigned_machine_id = next_machine.id
            else:
                state.idle_repairmen.append(repairman)
            state.machines_fixed += 1

        else:
            raise RuntimeError(f"unknown event type: {ev.event_type!r}")

        state.stats.record(operational_before, busy_before, state.current_time - previous_time)

        return StepRecord(
            time=state.current_time,
            previous_time=previous_time,
            event_type=ev.event_type,
            machine_id=machine.id,
            repairman_id=repairman_id,
            queued=queued,
            assigned_machine_id=assigned_machine_id,
            machines_fixed=state.machines_fixed,
            operational_before=operational_before,
            busy_before=busy_before,
        )

    def run(self) -> SimulationResult:
        """Process events until target_fixed_count machines have been fixed."""
        while not self.finished:
            self.step()
        return self.result()

    def result(self) -> SimulationResult:
        state = self.state
        stats = state.stats
        total = state.current_time
        probs = stats.steady_state_probabilities(total)
        busy_probs = stats.busy_probabilities(total)
        avg_util = stats.average_utilization(total)
        return SimulationResult(
            machines_fixed=state.machines_fixed,
            total_time=total,
            average_working=stats.average_working(total),
            average_utilization=avg_util,
            utilization_per_repairman=avg_util / self.repairman_count,
            steady_state_probabilities={k: float(p) for k, p in enumerate(probs)},
            busy_probabilities={b: float(q) for b, q in enumerate(busy_probs) if stats.busy_time[b] > 0},
            events_processed=state.events_processed,
            machine_count=self.machine_count,
            repairman_count=self.repairman_count,
            failure_rate=self.failure_rate,
            repair_rate=self.repair_rate,
            seed=self.seed,
            state_time={k: float(t) for k, t in enumerate(stats.state_time)},
        )

    def check_invariants(self) -> list[str]:
        """Return a list of violated invariants (empty when the state is consistent)."""
        state = self.state
        errors: list[str] = []

        busy = [r for r in state.repairmen if r.is_busy]
        if len(state.idle_repairmen) + len(busy) != self.repairman_count:
            errors.append(
                f"idle ({len(state.idle_repairmen)}) + busy ({len(busy)}) repairmen != {self.repairman_count}"
            )
        assigned = [r.assigned_machine for r in busy]
        operational = [m for m in state.machines if not m.broken]
        if len(state.failed_machines) + len(assigned) + len(operational) != self.machine_count:
            errors.append(
                f"waiting ({len(state.failed_machines)}) + assigned ({len(assigned)}) + "
                f"operational ({len(operational)}) machines != {self.machine_count}"
            )

        for r in state.repairmen:
            pending = state.events.pending_for(r)
            if r.is_busy and pending != 1:
                errors.append(f"busy repairman {r.id} has {pending} pending events")
            if not r.is_busy and pending != 0:
                errors.append(f"idle repairman {r.id} has {pending} pending events")
            if (r in state.idle_repairmen) == r.is_busy:
                errors.append(f"repairman {r.id} idle-queue membership does not match its assignment")

        assigned_ids = {m.id for m in assigned}
        if len(assigned_ids) != len(assigned):
            errors.append("a machine is assigned to more than one repairman")
        for m in state.machines:
            pending = state.events.pending_for(m)
            if not m.broken and pending != 1:
                errors.append(f"operational machine {m.id} has {pending} pending events")
            if m.broken and pending != 0:
                errors.append(f"broken machine {m.id} has {pending} pending events")
            waiting = m in state.failed_machines
            if waiting != (m.broken and m.id not in assigned_ids):
                errors.append(f"machine {m.id} waiting-queue membership does not match its state")
            if not m.broken and m.id in assigned_ids:
                errors.append(f"operational machine {m.id} is assigned to a repairman")

        if state.failed_machines and state.idle_repairmen:
            errors.append("machines are waiting while a repairman is idle")
        return errors


def run_simulation(config: SimulationConfig | None = None, **kwargs: Any) -> SimulationResult:
    """Build an engine from config (defaults if None) and run it to completion."""
    return SimulationEngine.from_config(config or SimulationConfig(), **kwargs).run()


def format_report(result: SimulationResult) -> str:
    lines = [
        f"{result.machines_fixed} machines fixed in {result.total_time}",
        f"Average number working machines: {result.average_working}",
        f"Average repairmen being utilized: {result.average_utilization}",
        "Steady-State probabilities:",
    ]
    for k, p in sorted(result.steady_state_probabilities.items()):
        lines.append(f"    {k}: {p}")
    return "\n".join(lines)
