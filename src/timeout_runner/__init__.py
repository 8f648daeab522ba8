"""Run an external command under a wall-clock deadline."""

from timeout_runner.runtime import (
    Command,
    Outcome,
    RunResult,
    TimeoutRunner,
)

__all__ = ["Command", "Outcome", "RunResult", "TimeoutRunner"]
