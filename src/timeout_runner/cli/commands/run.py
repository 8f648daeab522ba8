"""Run command: execute one command under a deadline."""

from __future__ import annotations

import argparse
import errno
import logging
from pathlib import Path

from timeout_runner.cli.context import (
    console,
    load_settings_or_error,
    print_error,
)
from timeout_runner.config.settings import ConfigError, RunnerSettings
from timeout_runner.runtime.errors import ClockFailure, LaunchFailure, SignalFailure
from timeout_runner.runtime.history import get_run_history
from timeout_runner.runtime.process import Command
from timeout_runner.runtime.runner import RunEvent, RunResult, TimeoutRunner

logger = logging.getLogger(__name__)

# Exit statuses follow timeout(1).
EXIT_TIMEOUT = 124
EXIT_RUNNER_FAILURE = 125
EXIT_CANNOT_EXECUTE = 126
EXIT_NOT_FOUND = 127
EXIT_INTERRUPTED = 130


def cmd_run(args: argparse.Namespace) -> int:
    """Run ``args.cmd`` with the resolved timeout settings."""
    settings = load_settings_or_error(args)
    if settings is None:
        return EXIT_RUNNER_FAILURE

    try:
        settings = settings.with_overrides(
            timeout=args.timeout,
            sleep_interval=args.sleep_interval,
            terminate_grace=args.terminate_grace,
            escalate=args.escalate,
            process_group=args.process_group,
            strategy=args.strategy,
            history=args.history,
        )
    except ConfigError as e:
        print_error(e)
        return EXIT_RUNNER_FAILURE

    cwd = args.cwd.resolve() if args.cwd is not None else None
    try:
        command = Command(
            " ".join(args.cmd) if args.shell else tuple(args.cmd),
            shell=args.shell,
            cwd=cwd,
            stdout_path=args.stdout,
            stderr_path=args.stderr,
            append=args.append,
        )
    except ValueError as e:
        print_error(e)
        return EXIT_RUNNER_FAILURE

    return run_command(command, settings, cwd=cwd)


def run_command(
    command: Command,
    settings: RunnerSettings,
    *,
    cwd: Path | None = None,
) -> int:
    """Run ``command`` per ``settings``, report the outcome, return an exit status."""
    runner = TimeoutRunner(
        signal_policy=settings.signal_policy,
        strategy=settings.strategy,
        use_process_group=settings.process_group,
    )

    try:
        result = runner.run(
            command,
            settings.timeout,
            settings.sleep_interval,
            on_event=_print_event,
        )
    except LaunchFailure as e:
        print_error(e)
        return _launch_exit_code(e)
    except SignalFailure as e:
        print_error(e)
        if e.result is not None:
            _record(e.result, settings, cwd)
        return EXIT_RUNNER_FAILURE
    except ClockFailure as e:
        print_error(e)
        return EXIT_RUNNER_FAILURE
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/], sent SIGTERM to the command")
        return EXIT_INTERRUPTED

    _record(result, settings, cwd)
    _print_summary(result)
    return result.effective_exit_code


def _print_event(event: RunEvent) -> None:
    if event.event_type == "timeout":
        console.print(
            f"[yellow]TIMEOUT[/] {event.detail} after {event.elapsed_seconds:.2f}s"
        )
    elif event.event_type in ("terminate", "kill"):
        console.print(f"[yellow]{event.detail}[/] (pid {event.pid})")
    elif event.event_type == "lingering":
        console.print(f"[red]WARNING[/] {event.detail} (pid {event.pid})")
    else:
        logger.debug("%s pid=%s: %s", event.event_type, event.pid, event.command)


def _print_summary(result: RunResult) -> None:
    if result.timed_out:
        exited = "exited" if result.exited else "may still be running"
        signals = ", ".join(result.signals_sent) or "no signal"
        console.print(
            f"[yellow]Timed out[/] after {result.elapsed_seconds:.2f}s "
            f"({result.checks} checks); sent {signals}, command {exited}"
        )
    else:
        console.print(
            f"[green]Completed[/] in {result.elapsed_seconds:.2f}s "
            f"({result.checks} checks), exit code {result.exit_code}",
        )
    if result.liveness_failures:
        console.print(
            f"[red]WARNING[/] {result.liveness_failures} liveness checks failed"
        )


def _record(result: RunResult, settings: RunnerSettings, cwd: Path | None) -> None:
    if not settings.history:
        return
    history = get_run_history()
    history.record_result(result, cwd=cwd)
    history.flush()


def _launch_exit_code(error: LaunchFailure) -> int:
    if isinstance(error.cause, FileNotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(error.cause, PermissionError) or error.cause.errno == errno.ENOEXEC:
        return EXIT_CANNOT_EXECUTE
    return EXIT_RUNNER_FAILURE
