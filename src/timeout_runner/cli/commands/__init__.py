"""CLI command handlers."""

from .config import cmd_config
from .history import cmd_history
from .run import cmd_run

__all__ = [
    "cmd_config",
    "cmd_history",
    "cmd_run",
]
