"""Tests for the CLI logging setup."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from timeout_runner.cli.app import run
from timeout_runner.main import setup_logging

ConfigureLogging = Callable[[bool], list[logging.Handler]]


@pytest.fixture
def configure_logging() -> Iterator[ConfigureLogging]:
    """Run ``setup_logging`` against an empty root logger and undo it afterwards.

    pytest keeps its own capture handlers on the root logger, which would turn
    ``basicConfig`` into a no-op, so they are set aside for the call.
    """
    root = logging.getLogger()
    saved_level = root.level
    created: list[logging.Handler] = []

    def configure(verbose: bool = False) -> list[logging.Handler]:
        saved = root.handlers[:]
        root.handlers = []
        setup_logging(verbose)
        added = root.handlers[:]
        created.extend(added)
        root.handlers = saved + added
        return added

    yield configure

    for handler in created:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(saved_level)


def _file_handlers(handlers: list[logging.Handler]) -> list[logging.FileHandler]:
    return [h for h in handlers if isinstance(h, logging.FileHandler)]


def test_logs_to_debug_log_in_state_dir(
    configure_logging: ConfigureLogging, tmp_path: Path
) -> None:
    handlers = configure_logging(False)

    log_file = tmp_path / "state" / "timeout-runner" / "debug.log"
    file_handlers = _file_handlers(handlers)
    assert len(handlers) == 1
    assert len(file_handlers) == 1
    assert file_handlers[0].baseFilename == str(log_file)
    assert logging.getLogger().level == logging.INFO
    assert "timeout-runner starting" in log_file.read_text(encoding="utf-8")


def test_level_comes_from_environment(
    configure_logging: ConfigureLogging,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("TIMEOUT_RUNNER_LOG_LEVEL", "warning")

    configure_logging(False)

    assert logging.getLogger().level == logging.WARNING
    log_file = tmp_path / "state" / "timeout-runner" / "debug.log"
    assert "timeout-runner starting" not in log_file.read_text(encoding="utf-8")


def test_unknown_level_falls_back_to_info(
    configure_logging: ConfigureLogging, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TIMEOUT_RUNNER_LOG_LEVEL", "chatty")

    configure_logging(False)

    assert logging.getLogger().level == logging.INFO


def test_verbose_adds_stderr_handler_at_debug(
    configure_logging: ConfigureLogging, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TIMEOUT_RUNNER_LOG_LEVEL", "ERROR")

    handlers = configure_logging(True)

    streams = [h for h in handlers if not isinstance(h, logging.FileHandler)]
    assert len(_file_handlers(handlers)) == 1
    assert len(streams) == 1
    assert isinstance(streams[0], logging.StreamHandler)
    assert streams[0].stream is sys.stderr
    assert logging.getLogger().level == logging.DEBUG


def test_cli_verbose_flag_reaches_logging_setup(
    configure_logging: ConfigureLogging,
) -> None:
    seen: list[bool] = []

    def record(verbose: bool) -> None:
        seen.append(verbose)
        configure_logging(verbose)

    assert run(["-v", "config"], configure_logging=record) == 0

    assert seen == [True]
    assert logging.getLogger().level == logging.DEBUG
