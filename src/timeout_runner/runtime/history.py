"""Per-command record of run durations and timeouts.

The CLI keeps one shared history in the state directory so ``timeout-runner
history`` can show how long a command usually takes and how often it hit its
deadline.
"""

from __future__ import annotations

import atexit
import json
import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from timeout_runner.config.paths import get_paths
from timeout_runner.runtime.runner import RunResult

logger = logging.getLogger(__name__)
HISTORY_SCHEMA_VERSION = 1
DEFAULT_SAMPLES_PER_KEY = 20


@dataclass(frozen=True, slots=True)
class RunStatsSnapshot:
    """Counts and duration figures for one command key."""

    key: str
    runs: int
    timeout_count: int
    completed_count: int
    max_duration_seconds: float
    p90_duration_seconds: float | None
    last_duration_seconds: float | None


@dataclass(slots=True)
class _KeyRecord:
    runs: int = 0
    timeouts: int = 0
    durations: deque[float] = field(default_factory=deque)


class RunHistory:
    """Run and timeout counts plus the most recent durations, keyed by command.

    Only the last ``max_samples_per_key`` durations are kept per key; counts
    cover every recorded run.
    """

    def __init__(self, max_samples_per_key: int = DEFAULT_SAMPLES_PER_KEY) -> None:
        self._max_samples_per_key = max_samples_per_key
        self._records: dict[str, _KeyRecord] = {}

    @property
    def max_samples_per_key(self) -> int:
        return self._max_samples_per_key

    def _entry(self, key: str) -> _KeyRecord:
        entry = self._records.get(key)
        if entry is None:
            entry = _KeyRecord(durations=deque(maxlen=self._max_samples_per_key))
            self._records[key] = entry
        return entry

    def record(self, key: str, duration_seconds: float, timed_out: bool) -> None:
        """Add one finished run under ``key``."""
        entry = self._entry(key)
        entry.runs += 1
        entry.durations.append(max(0.0, duration_seconds))
        if timed_out:
            entry.timeouts += 1

    def record_result(self, result: RunResult, *, cwd: Path | None = None) -> str:
        """Add a runner result and return the key it was filed under."""
        key = build_command_key(result.command, cwd=cwd)
        self.record(key, result.elapsed_seconds, result.timed_out)
        return key

    def keys(self) -> list[str]:
        return sorted(key for key, entry in self._records.items() if entry.runs > 0)

    def clear(self) -> None:
        self._records.clear()

    def snapshot(self, key: str) -> RunStatsSnapshot:
        """Summarize ``key``; unknown keys give an all-zero snapshot."""
        entry = self._records.get(key) or _KeyRecord()
        durations = entry.durations
        return RunStatsSnapshot(
            key=key,
            runs=entry.runs,
            timeout_count=entry.timeouts,
            completed_count=max(0, entry.runs - entry.timeouts),
            max_duration_seconds=max(durations, default=0.0),
            p90_duration_seconds=_percentile(durations, 0.9),
            last_duration_seconds=durations[-1] if durations else None,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": HISTORY_SCHEMA_VERSION,
            "max_samples_per_key": self._max_samples_per_key,
            "keys": {
                key: {
                    "runs": entry.runs,
                    "timeouts": entry.timeouts,
                    "durations": list(entry.durations),
                }
                for key, entry in self._records.items()
            },
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, object],
        *,
        max_samples_per_key: int = DEFAULT_SAMPLES_PER_KEY,
    ) -> "RunHistory":
        """Rebuild a history from ``to_dict`` output.

        Entries that are not mappings, and fields of the wrong type, are
        dropped rather than failing the whole load.
        """
        stored_limit = data.get("max_samples_per_key")
        if isinstance(stored_limit, int) and stored_limit > 0:
            max_samples_per_key = stored_limit
        history = cls(max_samples_per_key=max_samples_per_key)

        raw_keys = data.get("keys")
        if not isinstance(raw_keys, dict):
            return history

        for key, payload in raw_keys.items():
            if not isinstance(key, str) or not isinstance(payload, dict):
                continue
            entry = history._entry(key)
            runs = payload.get("runs", 0)
            if isinstance(runs, int) and runs >= 0:
                entry.runs = runs
            timeouts = payload.get("timeouts", 0)
            if isinstance(timeouts, int) and timeouts >= 0:
                entry.timeouts = timeouts
            durations = payload.get("durations", [])
            if isinstance(durations, list):
                entry.durations.extend(
                    max(0.0, float(value))
                    for value in durations
                    if isinstance(value, (int, float))
                )
        return history

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load(
        cls,
        path: Path,
        *,
        max_samples_per_key: int = DEFAULT_SAMPLES_PER_KEY,
    ) -> "RunHistory":
        """Read a saved history; a missing or unreadable file gives an empty one."""
        if not path.exists():
            return cls(max_samples_per_key=max_samples_per_key)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable run history %s: %s", path, exc)
            return cls(max_samples_per_key=max_samples_per_key)
        if not isinstance(raw, dict):
            logger.warning("Ignoring run history %s: not a JSON object", path)
            return cls(max_samples_per_key=max_samples_per_key)
        return cls.from_dict(raw, max_samples_per_key=max_samples_per_key)


class PersistentRunHistory(RunHistory):
    """History bound to a JSON file, written every ``autosave_every`` records."""

    def __init__(
        self,
        *,
        storage_path: Path,
        max_samples_per_key: int = DEFAULT_SAMPLES_PER_KEY,
        autosave_every: int = 5,
    ) -> None:
        super().__init__(max_samples_per_key=max_samples_per_key)
        self._storage_path = storage_path
        self._autosave_every = max(1, autosave_every)
        self._unsaved = 0

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    @classmethod
    def open(
        cls,
        storage_path: Path,
        *,
        max_samples_per_key: int = DEFAULT_SAMPLES_PER_KEY,
        autosave_every: int = 5,
    ) -> "PersistentRunHistory":
        """Load ``storage_path`` (if present) into a history that writes back to it."""
        loaded = RunHistory.load(storage_path, max_samples_per_key=max_samples_per_key)
        history = cls(
            storage_path=storage_path,
            max_samples_per_key=loaded.max_samples_per_key,
            autosave_every=autosave_every,
        )
        history._records = loaded._records
        return history

    def record(self, key: str, duration_seconds: float, timed_out: bool) -> None:
        super().record(key, duration_seconds, timed_out)
        self._unsaved += 1
        if self._unsaved >= self._autosave_every:
            self.flush()

    def clear(self) -> None:
        """Clear and write the empty history straight away."""
        super().clear()
        self._unsaved += 1
        self.flush()

    def flush(self) -> None:
        """Write unsaved records; a failed write is logged and retried next time."""
        if not self._unsaved:
            return
        try:
            self.save(self._storage_path)
        except OSError as exc:
            logger.warning(
                "Could not write run history %s: %s", self._storage_path, exc
            )
            return
        self._unsaved = 0


def build_command_key(command: str, *, cwd: Path | None = None) -> str:
    """Key a command by working directory and whitespace-collapsed text.

    >>> build_command_key("sleep   5")
    '-|sleep 5'
    """
    normalized = " ".join(command.split())
    cwd_key = str(cwd) if cwd is not None else "-"
    return f"{cwd_key}|{normalized}"


def _percentile(values: Iterable[float], q: float) -> float | None:
    ordered = sorted(values)
    if not ordered:
        return None
    return ordered[int((len(ordered) - 1) * q)]


_shared_history: PersistentRunHistory | None = None


def get_run_history() -> PersistentRunHistory:
    """The CLI's history, stored as ``history.json`` in the state directory.

    It is flushed at interpreter exit.
    """
    global _shared_history
    if _shared_history is None:
        _shared_history = PersistentRunHistory.open(get_paths().history_file)
        atexit.register(_shared_history.flush)
    return _shared_history


def reset_run_history() -> None:
    """Forget the shared history; the next ``get_run_history`` reloads from disk."""
    global _shared_history
    if _shared_history is not None:
        atexit.unregister(_shared_history.flush)
    _shared_history = None
