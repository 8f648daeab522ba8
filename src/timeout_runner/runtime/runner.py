"""Run one external command under a wall-clock deadline."""

from __future__ import annotations

import logging
import math
import signal
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from timeout_runner.runtime.errors import (
    ClockFailure,
    LivenessQueryFailure,
    SignalFailure,
)
from timeout_runner.runtime.policy import (
    RunState,
    SignalPolicy,
    WaitStrategy,
    validate_deadline,
    validate_poll_interval,
)
from timeout_runner.runtime.process import (
    SIGKILL,
    Command,
    ProcessHandle,
    launch_process,
    signal_name,
)

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124

Clock = Callable[[], float]
Sleeper = Callable[[float], None]
Launcher = Callable[..., ProcessHandle]


class Outcome(str, Enum):
    """How a run ended."""

    COMPLETED = "completed"  # Child exited before the deadline
    TIMED_OUT = "timed_out"  # Deadline exceeded, termination signal sent


@dataclass(frozen=True, slots=True)
class RunEvent:
    """Lifecycle event emitted while a command runs."""

    event_type: str
    command: str
    pid: int
    elapsed_seconds: float
    detail: str = ""


@dataclass(frozen=True, slots=True)
class RunResult:
    """Result of one timed run."""

    outcome: Outcome
    elapsed_seconds: float
    command: str
    pid: int
    deadline_seconds: float
    checks: int
    exit_code: int | None
    signals_sent: tuple[str, ...] = ()
    exited: bool = True
    liveness_failures: int = 0

    @property
    def timed_out(self) -> bool:
        return self.outcome is Outcome.TIMED_OUT

    @property
    def effective_exit_code(self) -> int:
        """Exit status in the convention of timeout(1)."""
        if self.timed_out:
            return TIMEOUT_EXIT_CODE
        if self.exit_code is None:
            return 1
        if self.exit_code < 0:
            return 128 - self.exit_code
        return self.exit_code


class TimeoutRunner:
    """Launches a command, watches it, and signals it once its deadline passes.

    The runner holds no per-run state, so one instance can serve any number of
    sequential runs.
    """

    def __init__(
        self,
        *,
        signal_policy: SignalPolicy | None = None,
        strategy: WaitStrategy = WaitStrategy.POLL,
        use_process_group: bool = True,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
        launcher: Launcher = launch_process,
    ) -> None:
        self._signal_policy = signal_policy or SignalPolicy()
        self._strategy = WaitStrategy(strategy)
        self._use_process_group = use_process_group
        self._clock = clock
        self._sleep = sleep
        self._launcher = launcher

    @property
    def strategy(self) -> WaitStrategy:
        return self._strategy

    @property
    def signal_policy(self) -> SignalPolicy:
        return self._signal_policy

    def run(
        self,
        command: Command | str | Sequence[str],
        deadline: float,
        poll_interval: float = 0.0,
        *,
        on_event: Callable[[RunEvent], None] | None = None,
    ) -> RunResult:
        """Run ``command`` and enforce ``deadline`` seconds of wall-clock time.

        Raises:
            LaunchFailure: The command could not be started. Nothing was polled.
            SignalFailure: The termination signal could not be delivered. The
                partial result is attached as ``exc.result``.
            ClockFailure: The clock failed. The child was sent a termination
                signal before the error propagated, as on any other exception
                raised while the child runs.
        """
        deadline = validate_deadline(deadline)
        poll_interval = validate_poll_interval(poll_interval)
        command = _as_command(command)

        state = RunState(
            start_time=self._now(),
            deadline=deadline,
            poll_interval=poll_interval,
        )
        handle = self._launcher(command, use_process_group=self._use_process_group)
        logger.info(
            "Running pid %s with %.3fs deadline (%s, interval %.3fs): %s",
            handle.pid,
            deadline,
            self._strategy.value,
            poll_interval,
            command.text,
        )
        signals_sent: list[str] = []
        signal_error: SignalFailure | None = None
        try:
            _emit(on_event, RunEvent("start", command.text, handle.pid, 0.0))
            if self._strategy is WaitStrategy.WAIT:
                outcome, checks, failures = self._wait_loop(handle, state)
            else:
                outcome, checks, failures = self._poll_loop(handle, state)

            exited = outcome is Outcome.COMPLETED
            if outcome is Outcome.TIMED_OUT:
                _emit(
                    on_event,
                    RunEvent(
                        "timeout",
                        command.text,
                        handle.pid,
                        state.elapsed(self._now()),
                        f"Deadline of {deadline:g}s exceeded",
                    ),
                )
                try:
                    exited = self._terminate(
                        handle, state, command, signals_sent, on_event
                    )
                except SignalFailure as exc:
                    signal_error = exc
                    exited = False

            elapsed = state.elapsed(self._now())
            exit_code = handle.returncode
        except BaseException:
            # A child already sent SIGTERM is not signalled twice.
            if not signals_sent:
                self._abort(handle)
            raise
        finally:
            handle.close()

        result = RunResult(
            outcome=outcome,
            elapsed_seconds=elapsed,
            command=command.text,
            pid=handle.pid,
            deadline_seconds=deadline,
            checks=checks,
            exit_code=exit_code,
            signals_sent=tuple(signals_sent),
            exited=exited,
            liveness_failures=failures,
        )
        logger.info(
            "pid %s %s after %.3fs (%d checks)",
            result.pid,
            result.outcome.value,
            result.elapsed_seconds,
            result.checks,
        )
        if signal_error is not None:
            signal_error.result = result
            raise signal_error
        return result

    def _poll_loop(
        self, handle: ProcessHandle, state: RunState
    ) -> tuple[Outcome, int, int]:
        checks = 0
        failures = 0
        while True:
            if state.poll_interval > 0:
                logger.debug("Sleeping %.3fs before next check", state.poll_interval)
                self._sleep(state.poll_interval)

            checks += 1
            try:
                alive = handle.is_alive()
            except LivenessQueryFailure as exc:
                failures += 1
                logger.warning("%s; retrying on next check", exc)
                alive = True

            if not alive:
                return Outcome.COMPLETED, checks, failures

            elapsed = state.elapsed(self._now())
            logger.debug("Check %d: pid %s alive at %.3fs", checks, handle.pid, elapsed)
            if elapsed > state.deadline:
                return Outcome.TIMED_OUT, checks, failures

    def _wait_loop(
        self, handle: ProcessHandle, state: RunState
    ) -> tuple[Outcome, int, int]:
        checks = 0
        failures = 0
        while True:
            checks += 1
            try:
                if handle.wait(state.remaining(self._now())):
                    return Outcome.COMPLETED, checks, failures
            except LivenessQueryFailure as exc:
                failures += 1
                logger.warning("%s; retrying on next check", exc)
                if state.poll_interval > 0:
                    self._sleep(state.poll_interval)

            if state.expired(self._now()):
                return Outcome.TIMED_OUT, checks, failures

    def _terminate(
        self,
        handle: ProcessHandle,
        state: RunState,
        command: Command,
        signals_sent: list[str],
        on_event: Callable[[RunEvent], None] | None,
    ) -> bool:
        """Send SIGTERM, wait out the grace period, and escalate if configured.

        Returns whether the child is known to have exited.
        """
        if not handle.send_signal(signal.SIGTERM):
            logger.info("pid %s exited before SIGTERM was sent", handle.pid)
            return True
        signals_sent.append(signal_name(signal.SIGTERM))
        _emit(
            on_event,
            RunEvent(
                "terminate",
                command.text,
                handle.pid,
                state.elapsed(self._now()),
                "Sent SIGTERM after deadline",
            ),
        )

        grace = self._signal_policy.terminate_grace_seconds
        if _wait_for_exit(handle, grace):
            return True

        if not self._signal_policy.escalate:
            logger.warning(
                "pid %s still running %.3fs after SIGTERM", handle.pid, grace
            )
            _emit(
                on_event,
                RunEvent(
                    "lingering",
                    command.text,
                    handle.pid,
                    state.elapsed(self._now()),
                    f"Still running {grace:g}s after SIGTERM",
                ),
            )
            return False

        if handle.send_signal(SIGKILL):
            signals_sent.append(signal_name(SIGKILL))
            _emit(
                on_event,
                RunEvent(
                    "kill",
                    command.text,
                    handle.pid,
                    state.elapsed(self._now()),
                    "Sent SIGKILL after terminate grace period",
                ),
            )
        return _wait_for_exit(handle, None)

    def _abort(self, handle: ProcessHandle) -> None:
        try:
            handle.send_signal(signal.SIGTERM)
        except SignalFailure as exc:
            logger.error(
                "Could not terminate pid %s while aborting: %s", handle.pid, exc
            )

    def _now(self) -> float:
        try:
            value = self._clock()
        except Exception as exc:
            raise ClockFailure(str(exc) or type(exc).__name__) from exc
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ClockFailure(f"non-finite reading {value!r}")
        return float(value)


def _as_command(command: Command | str | Sequence[str]) -> Command:
    if isinstance(command, Command):
        return command
    if isinstance(command, str):
        return Command(command)
    return Command.from_argv(command)


def _wait_for_exit(handle: ProcessHandle, timeout: float | None) -> bool:
    try:
        return handle.wait(timeout)
    except LivenessQueryFailure as exc:
        logger.warning("%s; exit after signal is unverified", exc)
        return False


def _emit(
    on_event: Callable[[RunEvent], None] | None,
    event: RunEvent,
) -> None:
    if on_event is None:
        return
    on_event(event)

