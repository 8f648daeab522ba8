"""Error taxonomy for timed command runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timeout_runner.runtime.runner import RunResult


class RunnerError(Exception):
    """Base exception for timed command runs."""

    pass


class LaunchFailure(RunnerError):
    """Raised when the command could not be started."""

    def __init__(self, command: str, cause: OSError) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"Failed to launch {command!r}: {cause}")


class LivenessQueryFailure(RunnerError):
    """Raised when a liveness query for the child fails.

    Transient: the runner logs it and queries again on the next tick.
    """

    def __init__(self, pid: int, cause: OSError) -> None:
        self.pid = pid
        self.cause = cause
        super().__init__(f"Liveness query for pid {pid} failed: {cause}")


class SignalFailure(RunnerError):
    """Raised when the termination signal could not be delivered."""

    def __init__(
        self,
        pid: int,
        signal_name: str,
        cause: OSError,
        result: RunResult | None = None,
    ) -> None:
        self.pid = pid
        self.signal_name = signal_name
        self.cause = cause
        self.result = result
        super().__init__(f"Failed to send {signal_name} to pid {pid}: {cause}")


class ClockFailure(RunnerError):
    """Raised when the clock fails or returns a non-finite reading."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Clock failure: {message}")
