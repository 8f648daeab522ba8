"""History command: show or clear recorded runs."""

from __future__ import annotations

import argparse

from rich.markup import escape
from rich.table import Table

from timeout_runner.cli.context import console
from timeout_runner.runtime.history import get_run_history


def cmd_history(args: argparse.Namespace) -> int:
    """Print a table of recorded runs per command."""
    history = get_run_history()

    if args.clear:
        history.clear()
        console.print(f"Cleared run history at {escape(str(history.storage_path))}")
        return 0

    keys = history.keys()
    if not keys:
        console.print("No runs recorded yet.")
        return 0

    snapshots = sorted(
        (history.snapshot(key) for key in keys),
        key=lambda snapshot: snapshot.runs,
        reverse=True,
    )

    table = Table(title="Run history")
    table.add_column("Command", overflow="fold")
    table.add_column("Cwd", overflow="fold")
    table.add_column("Runs", justify="right")
    table.add_column("Timeouts", justify="right")
    table.add_column("Last (s)", justify="right")
    table.add_column("p90 (s)", justify="right")
    table.add_column("Max (s)", justify="right")

    for snapshot in snapshots[: max(0, args.limit)]:
        cwd, _, command = snapshot.key.partition("|")
        table.add_row(
            escape(command),
            escape(cwd),
            str(snapshot.runs),
            str(snapshot.timeout_count),
            _seconds(snapshot.last_duration_seconds),
            _seconds(snapshot.p90_duration_seconds),
            _seconds(snapshot.max_duration_seconds),
        )

    console.print(table)
    return 0


def _seconds(value: float | None) -> str:
    return "-" if value is None else f"{value:.2f}"
