"""Retry scheduling for the long-poll worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ..datastructures.type_aliases import DurationSeconds


class SchedulePolicy(Protocol):
    """Protocol for failure-driven retry delay policies."""

    def fail(self) -> DurationSeconds:
        """Record a failure and return how long to wait before retrying."""
        ...

    def success(self) -> None:
        """Record a success, resetting any accumulated delay."""
        ...


@dataclass(slots=True)
class ExponentialSchedulePolicy:
    """Doubling backoff between ``min_seconds`` and ``max_seconds``.

    The first failure after a success waits ``min_seconds``; each further
    consecutive failure doubles the wait until it reaches ``max_seconds``.
    Owned by a single worker, so no locking.
    """

    min_seconds: DurationSeconds = 1.0
    max_seconds: DurationSeconds = 120.0
    _current_delay: DurationSeconds = field(init=False)

    def __post_init__(self) -> None:
        if self.min_seconds <= 0:
            raise ValueError(f"min_seconds must be positive, got {self.min_seconds}")
        if self.max_seconds < self.min_seconds:
            raise ValueError(
                f"max_seconds ({self.max_seconds}) must be >= min_seconds ({self.min_seconds})"
            )
        self._current_delay = self.min_seconds

    @property
    def current_delay(self) -> DurationSeconds:
        return self._current_delay

    def fail(self) -> DurationSeconds:
        delay = self._current_delay
        self._current_delay = min(self._current_delay * 2, self.max_seconds)
        return delay

    def success(self) -> None:
        self._current_delay = self.min_seconds
