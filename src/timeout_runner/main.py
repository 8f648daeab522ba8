"""Main module for timeout-runner."""

import logging
import os
import sys

from timeout_runner.cli.app import run
from timeout_runner.config.paths import get_paths


def setup_logging(verbose: bool = False) -> None:
    """Configure logging to the debug log file, and to stderr when verbose."""
    paths = get_paths()
    paths.state_dir.mkdir(parents=True, exist_ok=True)
    log_file = paths.debug_log

    # Set level from env var, default to INFO
    level = os.environ.get("TIMEOUT_RUNNER_LOG_LEVEL", "INFO").upper()

    handlers: list[logging.Handler] = [logging.FileHandler(log_file, mode="a")]
    if verbose:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        handlers.append(stream)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )
    logging.info("timeout-runner starting, logging to %s", log_file)


def main() -> None:
    """Entry point for the timeout-runner command."""
    sys.exit(run(configure_logging=setup_logging))


if __name__ == "__main__":
    main()
