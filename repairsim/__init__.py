"""Discrete-event simulator for the machine repairman problem."""

from repairsim.config import SimulationConfig, load_config
from repairsim.entities import Machine, Repairman, SimulationState, StatisticsAccumulator
from repairsim.errors import InvalidArgumentError
from repairsim.events import EmptyQueueError, Event, EventQueue, EventType
from repairsim.processes import ExponentialSampler, FixedSequenceSampler
from repairsim.runner import SimulationEngine, SimulationResult, StepRecord, run_simulation

__all__ = [
    "SimulationConfig",
    "load_config",
    "Machine",
    "Repairman",
    "SimulationState",
    "StatisticsAccumulator",
    "InvalidArgumentError",
    "EmptyQueueError",
    "Event",
    "EventQueue",
    "EventType",
    "ExponentialSampler",
    "FixedSequenceSampler",
    "SimulationEngine",
    "SimulationResult",
    "StepRecord",
    "run_simulation",
]
