"""Event types and priority-queue logic for the repairman simulation."""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Union

if TYPE_CHECKING:
    from repairsim.entities import Machine, Repairman


class EmptyQueueError(RuntimeError):
    """Popped an empty event queue; the engine's invariants are broken."""


class EventType(str, Enum):
    MACHINE_FAILURE = "machine_failure"
    REPAIR_COMPLETION = "repair_completion"


@dataclass
class Event:
    """
    A pending event: a machine failure or a repair completion.

    The time is captured when the event is created, so later changes to the
    entity do not reorder events already in the queue.
    """

    time: float
    event_type: EventType
    entity: Union["Machine", "Repairman"] = field(repr=False)

    @classmethod
    def machine_failure(cls, machine: Machine) -> Event:
        return cls(machine.next_failure_time, EventType.MACHINE_FAILURE, machine)

    @classmethod
    def repair_completion(cls, repairman: Repairman) -> Event:
        return cls(repairman.next_fix_time, EventType.REPAIR_COMPLETION, repairman)

    @property
    def entity_id(self) -> int:
        return self.entity.id


class EventQueue:
    """
    Min-heap of events keyed by (time, tiebreaker).

    The tiebreaker is a running insertion counter, so events with identical
    times pop in the order they were pushed.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, Event]] = []
        self._counter = 0

    def push(self, event: Event) -> None:
        self._counter += 1
        heapq.heappush(self._heap, (event.time, self._counter, event))

    def pop_min(self) -> Event:
        if not self._heap:
            raise EmptyQueueError("event queue is empty")
        _, _, event = heapq.heappop(self._heap)
        return event

    def peek(self) -> Event:
        if not self._heap:
            raise EmptyQueueError("event queue is empty")
        return self._heap[0][2]

    def pending_for(self, entity: Machine | Repairman) -> int:
        """Number of queued events belonging to entity."""
        return sum(1 for _, _, ev in self._heap if ev.entity is entity)

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __iter__(self) -> Iterator[Event]:
        """Snapshot of pending events in pop order; the queue is not modified."""
        return iter([ev for _, _, ev in sorted(self._heap, key=lambda x: (x[0], x[1]))])
