from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from timeout_runner.config.paths import reset_paths
from timeout_runner.runtime.history import reset_run_history


@pytest.fixture(autouse=True)
def isolate_xdg_dirs(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[None]:
    """Keep config, history and logs out of the real home directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.delenv("TIMEOUT_RUNNER_CONFIG", raising=False)
    reset_paths()
    reset_run_history()
    try:
        yield
    finally:
        reset_run_history()
        reset_paths()
