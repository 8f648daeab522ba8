"""Shared context helpers for CLI command modules."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.markup import escape

from timeout_runner.config.settings import ConfigError, RunnerSettings

# Status lines go to stderr so the command's own stdout stays clean.
console = Console(stderr=True, highlight=False)


def print_error(error: Exception | str) -> None:
    """Print a user-facing error line."""
    console.print(f"[bold red]Error:[/] {escape(str(error))}")


def load_settings_or_error(args: argparse.Namespace) -> RunnerSettings | None:
    """Load settings for ``args`` or print a user-facing error and return None."""
    try:
        return RunnerSettings.load(getattr(args, "config", None))
    except ConfigError as e:
        print_error(e)
        return None
