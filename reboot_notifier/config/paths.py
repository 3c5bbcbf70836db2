"""
Path Resolution — Pick writable locations for the config, snapshot and history files.

Log directory candidates, in priority order:

1. ``SECOPS_REBOOT_LOG_DIR`` environment override
2. The platform logs directory
3. A per-app directory under the system temp dir
4. The application-data directory

The first candidate that can be created and accepts a probe file wins.
If none does, the home directory is used as a last resort.
"""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

APP_NAME = "SecOpsRebootNotifier"
LOG_DIR_ENV = "SECOPS_REBOOT_LOG_DIR"

CONFIG_FILE_NAME = "SecOpsNotifierConfig.json"
STATE_FILE_NAME = "reboot_state.json"
HISTORY_FILE_NAME = "reboot_action_history.log"


@dataclass(frozen=True)
class ResolvedPaths:
    """Absolute paths handed to the config store and action log."""

    config_file: Path
    state_file: Path
    history_file: Path
    base_dir: Path


def logs_directory(home: Optional[Path] = None) -> Path:
    home = home or Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Logs" / APP_NAME
    return home / ".local" / "state" / APP_NAME / "logs"


def app_data_directory(home: Optional[Path] = None) -> Path:
    home = home or Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    return home / ".local" / "share" / APP_NAME


def candidate_directories(home: Optional[Path] = None) -> List[Path]:
    candidates: List[Path] = []
    override = os.environ.get(LOG_DIR_ENV)
    if override:
        candidates.append(Path(override).expanduser())
    candidates.append(logs_directory(home))
    candidates.append(Path(tempfile.gettempdir()) / APP_NAME)
    candidates.append(app_data_directory(home))
    return candidates


def is_writable_dir(directory: Path) -> bool:
    """Create `directory` if needed and check a file can be written in it."""
    probe = directory / f".write_test_{uuid4().hex}"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        probe.write_bytes(b"probe")
        probe.unlink()
        return True
    except OSError as e:
        logger.debug(f"Directory {directory} not writable: {e}")
        return False


def resolve_config_path(home: Optional[Path] = None) -> Path:
    directory = app_data_directory(home)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Could not create config directory {directory}: {e}")
    return directory / CONFIG_FILE_NAME


def resolve_paths(
    home: Optional[Path] = None,
    state_file_name: str = STATE_FILE_NAME,
    history_file_name: str = HISTORY_FILE_NAME,
) -> ResolvedPaths:
    """Choose the first writable log directory and build the three file paths."""
    home = home or Path.home()
    chosen = next((d for d in candidate_directories(home) if is_writable_dir(d)), home)
    logger.info(f"Selected writable log directory: {chosen}")

    return ResolvedPaths(
        config_file=resolve_config_path(home),
        state_file=chosen / state_file_name,
        history_file=chosen / history_file_name,
        base_dir=chosen,
    )
