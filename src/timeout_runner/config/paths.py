"""Centralized path management for timeout-runner.

Follows XDG Base Directory Specification:
- Config: $XDG_CONFIG_HOME/timeout-runner (default: ~/.config/timeout-runner)
- State: $XDG_STATE_HOME/timeout-runner (default: ~/.local/state/timeout-runner)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

APP_DIR_NAME = "timeout-runner"
CONFIG_ENV_VAR = "TIMEOUT_RUNNER_CONFIG"


def _xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _xdg_state_home() -> Path:
    """Get XDG_STATE_HOME, defaulting to ~/.local/state."""
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


@dataclass
class RunnerPaths:
    """Centralized path management following XDG spec."""

    _config_home: Path = field(default_factory=_xdg_config_home)
    _state_home: Path = field(default_factory=_xdg_state_home)

    @property
    def config_dir(self) -> Path:
        """Global config: ~/.config/timeout-runner/"""
        return self._config_home / APP_DIR_NAME

    @property
    def state_dir(self) -> Path:
        """Global state: ~/.local/state/timeout-runner/"""
        return self._state_home / APP_DIR_NAME

    @property
    def config_file(self) -> Path:
        """Settings file, overridable with $TIMEOUT_RUNNER_CONFIG."""
        override = os.environ.get(CONFIG_ENV_VAR)
        if override:
            return Path(override).expanduser()
        return self.config_dir / "config.yaml"

    @property
    def history_file(self) -> Path:
        """Run history: ~/.local/state/timeout-runner/history.json"""
        return self.state_dir / "history.json"

    @property
    def debug_log(self) -> Path:
        """Debug log: ~/.local/state/timeout-runner/debug.log"""
        return self.state_dir / "debug.log"


# Singleton instance
_paths: RunnerPaths | None = None


def get_paths() -> RunnerPaths:
    """Get the paths singleton."""
    global _paths
    if _paths is None:
        _paths = RunnerPaths()
    return _paths


def reset_paths() -> None:
    """Reset the paths singleton so environment changes are picked up."""
    global _paths
    _paths = None
