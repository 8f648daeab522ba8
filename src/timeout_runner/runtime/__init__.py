"""Runtime primitives for launching and timing external commands."""

from timeout_runner.runtime.errors import (
    ClockFailure,
    LaunchFailure,
    LivenessQueryFailure,
    RunnerError,
    SignalFailure,
)
from timeout_runner.runtime.policy import RunState, SignalPolicy, WaitStrategy
from timeout_runner.runtime.process import Command, ProcessHandle, launch_process
from timeout_runner.runtime.runner import (
    Outcome,
    RunEvent,
    RunResult,
    TimeoutRunner,
)

__all__ = [
    "ClockFailure",
    "Command",
    "LaunchFailure",
    "LivenessQueryFailure",
    "Outcome",
    "ProcessHandle",
    "RunEvent",
    "RunResult",
    "RunState",
    "RunnerError",
    "SignalFailure",
    "SignalPolicy",
    "TimeoutRunner",
    "WaitStrategy",
    "launch_process",
]
