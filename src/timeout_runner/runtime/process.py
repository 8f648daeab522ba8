"""Child process launch, liveness and signal delivery."""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from timeout_runner.runtime.errors import (
    LaunchFailure,
    LivenessQueryFailure,
    SignalFailure,
)

logger = logging.getLogger(__name__)

# Windows has no SIGKILL; Popen.kill() maps to TerminateProcess there.
SIGKILL: int = getattr(signal, "SIGKILL", signal.SIGTERM)


@dataclass(frozen=True, slots=True)
class Command:
    """An external program invocation with optional output redirection.

    ``args`` is an argv sequence, or a command line string when ``shell`` is
    set. A string without ``shell`` is split with shell-like rules.
    """

    args: str | tuple[str, ...]
    shell: bool = False
    cwd: Path | None = None
    env: Mapping[str, str] | None = field(default=None, hash=False, compare=False)
    stdout_path: Path | None = None
    stderr_path: Path | None = None
    append: bool = False

    def __post_init__(self) -> None:
        args = self.args
        if self.shell:
            if not isinstance(args, str):
                args = shlex.join(str(part) for part in args)
            if not args.strip():
                raise ValueError("Command line must not be empty")
        else:
            if isinstance(args, str):
                args = tuple(shlex.split(args))
            else:
                args = tuple(str(part) for part in args)
            if not args:
                raise ValueError("Command must have at least one argument")
        object.__setattr__(self, "args", args)

    @classmethod
    def from_argv(cls, argv: Sequence[str], **options: object) -> "Command":
        """Build a command from an argv list."""
        return cls(tuple(argv), **options)  # type: ignore[arg-type]

    @property
    def text(self) -> str:
        """Printable form of the command."""
        if isinstance(self.args, str):
            return self.args
        return shlex.join(self.args)


class ProcessHandle:
    """Exclusive handle on one running child process."""

    def __init__(
        self,
        process: subprocess.Popen[bytes],
        *,
        use_process_group: bool,
        streams: Sequence[IO[bytes]] = (),
    ) -> None:
        self._process = process
        self._use_process_group = bool(use_process_group and os.name != "nt")
        self._streams = list(streams)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def is_alive(self) -> bool:
        """Query whether the child is still running."""
        try:
            return self._process.poll() is None
        except OSError as exc:
            raise LivenessQueryFailure(self.pid, exc) from exc

    def send_signal(self, sig: int) -> bool:
        """Deliver ``sig`` to the child (or its process group).

        Returns False when the child had already exited.
        """
        if self._process.poll() is not None:
            return False
        try:
            if self._use_process_group:
                os.killpg(self.pid, sig)
            else:
                self._process.send_signal(sig)
        except ProcessLookupError:
            return False
        except OSError as exc:
            raise SignalFailure(self.pid, signal_name(sig), exc) from exc
        return True

    def wait(self, timeout: float | None) -> bool:
        """Block until the child exits or ``timeout`` passes; True if it exited."""
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        except OSError as exc:
            raise LivenessQueryFailure(self.pid, exc) from exc
        return True

    def close(self) -> None:
        """Release redirect streams held for the child."""
        for stream in self._streams:
            stream.close()
        self._streams.clear()


def launch_process(command: Command, *, use_process_group: bool) -> ProcessHandle:
    """Start ``command`` without waiting for it.

    With ``use_process_group`` the child gets its own session on POSIX, which
    keeps it out of the controlling terminal's job table and lets the whole
    group be signalled at once.
    """
    streams: list[IO[bytes]] = []
    try:
        stdout = _open_redirect(command.stdout_path, command.append, streams)
        if (
            command.stderr_path is not None
            and command.stderr_path == command.stdout_path
        ):
            stderr: IO[bytes] | None = stdout
        else:
            stderr = _open_redirect(command.stderr_path, command.append, streams)

        process = subprocess.Popen(
            command.args,
            shell=command.shell,
            cwd=str(command.cwd) if command.cwd is not None else None,
            env=dict(command.env) if command.env is not None else None,
            stdout=stdout,
            stderr=stderr,
            start_new_session=bool(use_process_group and os.name != "nt"),
        )
    except OSError as exc:
        for stream in streams:
            stream.close()
        raise LaunchFailure(command.text, exc) from exc

    logger.debug("Started pid %s: %s", process.pid, command.text)
    return ProcessHandle(process, use_process_group=use_process_group, streams=streams)


def signal_name(sig: int) -> str:
    """Return the symbolic name of a signal number."""
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


def _open_redirect(
    path: Path | None, append: bool, streams: list[IO[bytes]]
) -> IO[bytes] | None:
    if path is None:
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    stream = path.open("ab" if append else "wb")
    streams.append(stream)
    return stream
