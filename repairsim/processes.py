"""Processes: exponential failure/repair interval sampling."""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from repairsim.errors import InvalidArgumentError, SequenceExhaustedError


def check_rate(rate: float, name: str = "rate") -> float:
    """Return rate as float; raise InvalidArgumentError unless it is positive and finite."""
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise InvalidArgumentError(f"{name} must be a number, got {rate!r}")
    rate = float(rate)
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidArgumentError(f"{name} must be positive and finite, got {rate}")
    return rate


def make_rng(seed: int | None = None) -> np.random.Generator:
    return np.random.default_rng(seed)


class ExponentialSampler:
    """
    Exponential interval sampler: -ln(U) / rate with U uniform on (0, 1].

    numpy draws on [0, 1), so U is taken as 1 - draw; U == 0 (and an
    infinite interval) can never occur.
    """

    def __init__(self, rng: np.random.Generator | None = None, seed: int | None = None) -> None:
        self.rng = rng if rng is not None else make_rng(seed)

    def uniform(self) -> float:
        """Uniform draw on (0, 1]."""
        return 1.0 - float(self.rng.random())

    def sample(self, rate: float) -> float:
        rate = check_rate(rate)
        return -math.log(self.uniform()) / rate


class FixedSequenceSampler:
    """
    Replays a fixed list of intervals regardless of the rate (the rate is
    still validated). After the last value, either keeps repeating it or
    raises SequenceExhaustedError.
    """

    def __init__(self, values: Iterable[float], repeat_last: bool = True) -> None:
        self.values = [float(v) for v in values]
        if not self.values:
            raise InvalidArgumentError("interval sequence must not be empty")
        if any(v < 0 or not math.isfinite(v) for v in self.values):
            raise InvalidArgumentError("intervals must be non-negative and finite")
        self.repeat_last = repeat_last
        self.position = 0

    def sample(self, rate: float) -> float:
        check_rate(rate)
        if self.position < len(self.values):
            value = self.values[self.position]
            self.position += 1
            return value
        if self.repeat_last:
            return self.values[-1]
        raise SequenceExhaustedError(
            f"interval sequence exhausted after {len(self.values)} draws"
        )
