"""Configuration management for timeout-runner."""
from __future__ import annotations

from timeout_runner.config.paths import RunnerPaths, get_paths, reset_paths
from timeout_runner.config.settings import ConfigError, RunnerSettings

__all__ = [
    "ConfigError",
    "RunnerPaths",
    "RunnerSettings",
    "get_paths",
    "reset_paths",
]
