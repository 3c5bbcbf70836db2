"""
Persistence Module — Atomic file writes, config store and action log.
"""

from .action_log import ActionLog
from .atomic_write import (
    AtomicWriteError,
    DestinationIsDirectoryError,
    EmptyPathError,
    RenameError,
    ShortWriteError,
    TempFileError,
    write_atomic,
    write_json_atomic,
)
from .config_store import ConfigStore

__all__ = [
    "ActionLog",
    "ConfigStore",
    "AtomicWriteError",
    "DestinationIsDirectoryError",
    "EmptyPathError",
    "RenameError",
    "ShortWriteError",
    "TempFileError",
    "write_atomic",
    "write_json_atomic",
]
