"""Deadline, polling and signal policy for a timed run."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class WaitStrategy(str, Enum):
    """How the runner waits for the child between deadline checks."""

    POLL = "poll"  # Sleep-and-query loop
    WAIT = "wait"  # Blocking wait-with-timeout on the process handle


@dataclass(frozen=True, slots=True)
class SignalPolicy:
    """Process signaling behavior once the deadline has passed."""

    terminate_grace_seconds: float = 5.0
    escalate: bool = False

    def __post_init__(self) -> None:
        if not _is_finite(self.terminate_grace_seconds):
            raise ValueError("terminate_grace_seconds must be a finite number")
        if self.terminate_grace_seconds < 0:
            raise ValueError(
                "terminate_grace_seconds must be >= 0, "
                f"got {self.terminate_grace_seconds}"
            )


@dataclass(frozen=True, slots=True)
class RunState:
    """Timing state of one run."""

    start_time: float
    deadline: float
    poll_interval: float

    def __post_init__(self) -> None:
        validate_deadline(self.deadline)
        validate_poll_interval(self.poll_interval)

    def elapsed(self, now: float) -> float:
        """Seconds elapsed since the run started."""
        return now - self.start_time

    def remaining(self, now: float) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self.deadline - self.elapsed(now))

    def expired(self, now: float) -> bool:
        """Whether the deadline has been exceeded.

        The comparison is strict: reaching the deadline exactly is not a timeout.
        """
        return self.elapsed(now) > self.deadline


def validate_deadline(deadline: float) -> float:
    """Return ``deadline`` if it is a positive finite number of seconds."""
    if not _is_finite(deadline) or deadline <= 0:
        raise ValueError(
            f"deadline must be a positive number of seconds, got {deadline!r}"
        )
    return float(deadline)


def validate_poll_interval(poll_interval: float) -> float:
    """Return ``poll_interval`` if it is a non-negative finite number of seconds."""
    if not _is_finite(poll_interval) or poll_interval < 0:
        raise ValueError(
            "poll_interval must be a non-negative number of seconds, "
            f"got {poll_interval!r}"
        )
    return float(poll_interval)


def _is_finite(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
