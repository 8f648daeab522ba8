"""End-to-end timing scenarios against real child processes."""

from __future__ import annotations

import os
import signal
from sys import executable

import pytest

from timeout_runner.runtime.errors import LaunchFailure
from timeout_runner.runtime.policy import SignalPolicy, WaitStrategy
from timeout_runner.runtime.process import Command
from timeout_runner.runtime.runner import Outcome, TimeoutRunner

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX signal semantics")

SLEEP_FOREVER = [executable, "-c", "import time; time.sleep(60)"]


def _sleep_for(seconds: float) -> list[str]:
    return [executable, "-c", f"import time; time.sleep({seconds})"]


def test_short_command_completes_before_deadline() -> None:
    runner = TimeoutRunner()

    result = runner.run(_sleep_for(0.2), deadline=1.5, poll_interval=0.1)

    assert result.outcome is Outcome.COMPLETED
    assert result.exit_code == 0
    assert result.signals_sent == ()
    assert 0.15 <= result.elapsed_seconds < 1.5


def test_endless_command_is_terminated_after_deadline() -> None:
    runner = TimeoutRunner()

    result = runner.run(SLEEP_FOREVER, deadline=1.5, poll_interval=0.1)

    assert result.outcome is Outcome.TIMED_OUT
    assert result.signals_sent == ("SIGTERM",)
    assert result.exited
    assert result.exit_code == -signal.SIGTERM
    assert 1.5 < result.elapsed_seconds < 5.0
    assert result.effective_exit_code == 124


def test_tiny_deadline_with_busy_poll_times_out_quickly() -> None:
    runner = TimeoutRunner()

    result = runner.run(_sleep_for(5), deadline=0.01, poll_interval=0)

    assert result.outcome is Outcome.TIMED_OUT
    assert result.elapsed_seconds < 2.0
    assert result.checks >= 1


def test_invalid_command_fails_to_launch() -> None:
    runner = TimeoutRunner()

    with pytest.raises(LaunchFailure):
        runner.run(["no-such-command-for-timeout-runner"], deadline=1.0)


@pytest.mark.parametrize("poll_interval", [0.0, 0.05])
def test_poll_interval_does_not_change_outcome(poll_interval: float) -> None:
    runner = TimeoutRunner()

    fast = runner.run(_sleep_for(0.05), deadline=5.0, poll_interval=poll_interval)
    slow = runner.run(SLEEP_FOREVER, deadline=0.3, poll_interval=poll_interval)

    assert fast.outcome is Outcome.COMPLETED
    assert slow.outcome is Outcome.TIMED_OUT


def test_repeated_runs_do_not_interfere() -> None:
    runner = TimeoutRunner()

    first = runner.run(_sleep_for(0.05), deadline=5.0, poll_interval=0.01)
    second = runner.run(_sleep_for(0.05), deadline=5.0, poll_interval=0.01)

    assert first.outcome is second.outcome is Outcome.COMPLETED
    assert first.pid != second.pid


def test_exit_code_is_passed_through() -> None:
    runner = TimeoutRunner()

    result = runner.run([executable, "-c", "raise SystemExit(3)"], 5.0, 0.01)

    assert result.outcome is Outcome.COMPLETED
    assert result.effective_exit_code == 3


def test_wait_strategy_matches_poll_outcomes() -> None:
    runner = TimeoutRunner(strategy=WaitStrategy.WAIT)

    fast = runner.run(_sleep_for(0.1), deadline=5.0)
    slow = runner.run(SLEEP_FOREVER, deadline=0.3)

    assert fast.outcome is Outcome.COMPLETED
    assert slow.outcome is Outcome.TIMED_OUT
    assert slow.signals_sent == ("SIGTERM",)


def test_sigterm_ignoring_child_is_killed_when_escalating() -> None:
    runner = TimeoutRunner(
        signal_policy=SignalPolicy(terminate_grace_seconds=0.2, escalate=True)
    )
    script = (
        "import signal, time; "
        "signal.signal(signal.SIGTERM, signal.SIG_IGN); "
        "time.sleep(60)"
    )

    result = runner.run([executable, "-c", script], deadline=1.0, poll_interval=0.05)

    assert result.outcome is Outcome.TIMED_OUT
    assert result.signals_sent == ("SIGTERM", "SIGKILL")
    assert result.exit_code == -signal.SIGKILL


def test_shell_command_runs_through_shell() -> None:
    runner = TimeoutRunner()

    result = runner.run(Command("exit 7", shell=True), deadline=5.0, poll_interval=0.01)

    assert result.exit_code == 7
