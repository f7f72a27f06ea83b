"""Error types raised by the simulator."""

from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Non-positive rate or count (or otherwise unusable parameter) at setup."""


class SequenceExhaustedError(RuntimeError):
    """A fixed interval sequence ran out of values."""
