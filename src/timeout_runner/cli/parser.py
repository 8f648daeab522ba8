"""Argument parser construction for the timeout-runner CLI."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from timeout_runner.runtime.policy import WaitStrategy


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from e
    if not number > 0 or number == float("inf"):
        raise argparse.ArgumentTypeError(f"must be a positive number, got {value}")
    return number


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from e
    if not number >= 0 or number == float("inf"):
        raise argparse.ArgumentTypeError(f"must be zero or more, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        prog="timeout-runner",
        description="Run a command and send it SIGTERM once a deadline passes",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Config file (default: $XDG_CONFIG_HOME/timeout-runner/config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log polling progress to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run a command with a timeout",
    )
    run_parser.add_argument(
        "--timeout",
        "-t",
        type=_positive_float,
        help="Deadline in seconds, fractions allowed (default: 10)",
    )
    run_parser.add_argument(
        "--sleep-interval",
        "-i",
        type=_non_negative_float,
        help="Seconds between liveness checks, 0 to busy-poll (default: 0.1)",
    )
    run_parser.add_argument(
        "--grace",
        type=_non_negative_float,
        dest="terminate_grace",
        help="Seconds to wait for exit after SIGTERM (default: 5)",
    )
    run_parser.add_argument(
        "--escalate",
        action="store_true",
        default=None,
        help="Send SIGKILL if the command outlives the grace period",
    )
    run_parser.add_argument(
        "--no-process-group",
        action="store_false",
        dest="process_group",
        default=None,
        help="Keep the command in our process group and signal only its pid",
    )
    run_parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in WaitStrategy],
        help="poll: sleep-and-check loop; wait: blocking wait with timeout",
    )
    run_parser.add_argument(
        "--shell",
        action="store_true",
        help="Run the command through the shell",
    )
    run_parser.add_argument(
        "--cwd",
        type=Path,
        help="Working directory for the command",
    )
    run_parser.add_argument(
        "--stdout",
        type=Path,
        help="Redirect the command's stdout to this file",
    )
    run_parser.add_argument(
        "--stderr",
        type=Path,
        help="Redirect the command's stderr to this file",
    )
    run_parser.add_argument(
        "--append",
        action="store_true",
        help="Append to redirect files instead of truncating them",
    )
    run_parser.add_argument(
        "--no-history",
        action="store_false",
        dest="history",
        default=None,
        help="Do not record this run in the history file",
    )
    run_parser.add_argument(
        "cmd",
        nargs=argparse.REMAINDER,
        help="Command to run (put after --)",
    )

    # History command
    history_parser = subparsers.add_parser(
        "history",
        help="Show recorded run durations and timeouts",
    )
    history_parser.add_argument(
        "--limit",
        "-n",
        type=int,
        default=20,
        help="Maximum number of commands to show (default: 20)",
    )
    history_parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete all recorded runs",
    )

    # Config command
    subparsers.add_parser(
        "config",
        help="Print the resolved configuration",
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments from argv (or sys.argv when omitted)."""
    parser = build_parser()
    if argv is None:
        args = parser.parse_args()
    else:
        args = parser.parse_args(list(argv))

    if args.command == "run":
        cmd = list(args.cmd)
        # argparse keeps the literal "--" in REMAINDER
        if cmd and cmd[0] == "--":
            cmd = cmd[1:]
        if not cmd:
            parser.error("No command provided. Example: run --timeout 5 -- sleep 10")
        args.cmd = cmd
    return args
