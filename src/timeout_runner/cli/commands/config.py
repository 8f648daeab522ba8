"""Config command: print the resolved settings."""

from __future__ import annotations

import argparse

import yaml
from rich.markup import escape

from timeout_runner.cli.commands.run import EXIT_RUNNER_FAILURE
from timeout_runner.cli.context import console, load_settings_or_error
from timeout_runner.config.paths import get_paths


def cmd_config(args: argparse.Namespace) -> int:
    """Print the settings a run would use, as YAML."""
    settings = load_settings_or_error(args)
    if settings is None:
        return EXIT_RUNNER_FAILURE

    source = args.config or get_paths().config_file
    if source.exists():
        console.print(f"# from {escape(str(source))}")
    else:
        console.print("# built-in defaults")
    print(yaml.safe_dump(settings.to_dict(), sort_keys=False), end="")
    return 0
