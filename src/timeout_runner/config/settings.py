"""Runner settings loaded from the YAML config file.

Resolution order: command line flags > config file > built-in defaults.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from timeout_runner.config.paths import get_paths
from timeout_runner.runtime.policy import (
    SignalPolicy,
    WaitStrategy,
    validate_deadline,
    validate_poll_interval,
)

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the config file or an override is invalid."""

    pass


@dataclass(slots=True)
class RunnerSettings:
    """Resolved options for a timed run."""

    timeout: float = 10.0  # Deadline in seconds
    sleep_interval: float = 0.1  # Sleep between liveness checks, 0 = busy-poll
    terminate_grace: float = 5.0  # Wait after SIGTERM before giving up
    escalate: bool = False  # Send SIGKILL if still alive after the grace period
    process_group: bool = True  # Own session; signal the whole group
    strategy: WaitStrategy = WaitStrategy.POLL
    history: bool = True  # Record runs in the history file

    def __post_init__(self) -> None:
        try:
            self.timeout = validate_deadline(self.timeout)
            self.sleep_interval = validate_poll_interval(self.sleep_interval)
            SignalPolicy(terminate_grace_seconds=self.terminate_grace)
            self.terminate_grace = float(self.terminate_grace)
            self.strategy = WaitStrategy(self.strategy)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        for name in ("escalate", "process_group", "history"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false")

    @classmethod
    def load(cls, path: Path | None = None) -> "RunnerSettings":
        """Load settings from ``path`` or the default config file.

        A missing file yields the defaults; an unreadable or invalid one raises
        ConfigError.
        """
        config_path = path or get_paths().config_file
        if not config_path.exists():
            if path is not None:
                raise ConfigError(f"Config file not found: {config_path}")
            logger.debug("No config at %s, using defaults", config_path)
            return cls()

        try:
            raw_data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config {config_path}: {e}") from e

        if raw_data is None:
            return cls()
        if not isinstance(raw_data, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        settings = cls.from_dict(raw_data, source=str(config_path))
        logger.debug("Loaded config from %s", config_path)
        return settings

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], *, source: str = "<dict>"
    ) -> "RunnerSettings":
        """Build settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown config key %r in %s", key, source)
        return cls(**{key: value for key, value in data.items() if key in known})

    def with_overrides(self, **overrides: Any) -> "RunnerSettings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)

    @property
    def signal_policy(self) -> SignalPolicy:
        return SignalPolicy(
            terminate_grace_seconds=self.terminate_grace,
            escalate=self.escalate,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML-friendly dictionary."""
        data = dataclasses.asdict(self)
        data["strategy"] = self.strategy.value
        return data
