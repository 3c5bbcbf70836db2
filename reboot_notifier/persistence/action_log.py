"""
Action Log — Append-only NDJSON history plus a latest-action snapshot.

Each recorded action becomes one JSON line in the history file
(never edited, only appended) and fully replaces the snapshot file.
All writes run on one background worker: calls return immediately but
are applied in the order they were issued.

## Usage

    log = ActionLog(state_path, history_path)
    log.clear_now()                                   # fresh snapshot at startup
    log.record(ActionName.delay(1800), countdown.snapshot())
    log.flush()
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future
from pathlib import Path
from typing import List, Optional, Union

from ..concurrency import SerialQueue
from ..models.action import CountdownSnapshot, LoggedAction, StateSnapshot
from .atomic_write import AtomicWriteError, write_atomic, write_json_atomic

logger = logging.getLogger(__name__)

LOG_FILE_MODE = 0o644


class ActionLog:
    """
    Audit trail writer.

    The history file is append-only. A crash during an append can at
    worst truncate the line being written; earlier lines are untouched.
    """

    def __init__(self, state_path: Union[str, Path], history_path: Union[str, Path]):
        self.state_path = Path(state_path).expanduser()
        self.history_path = Path(history_path).expanduser()
        self._queue = SerialQueue("action-log")
        logger.info(f"Action log state=[{self.state_path}] history=[{self.history_path}]")

    # -- public API ------------------------------------------------------------

    def record(self, action: str, snapshot: CountdownSnapshot) -> Future:
        """
        Append `action` to the history and make it the current snapshot.

        Args:
            action: Action name (see ActionName)
            snapshot: Countdown value at the time of the action

        Returns:
            Future resolving once both files have been written
        """
        entry = LoggedAction(action=action, remaining_seconds=snapshot.remaining_seconds)
        state = StateSnapshot(
            timestamp=entry.timestamp,
            action=action,
            remaining_seconds=snapshot.remaining_seconds,
        )

        def run() -> None:
            self._append_history(entry)
            self._write_state(state)

        return self._queue.submit(run)

    def write_snapshot(self, action: str, snapshot: CountdownSnapshot) -> Future:
        """Replace the snapshot file without touching the history."""
        state = StateSnapshot(action=action, remaining_seconds=snapshot.remaining_seconds)
        return self._queue.submit(self._write_state, state)

    def clear(self) -> Future:
        """Reset the snapshot file to ``{}`` on the worker."""
        return self._queue.submit(self._clear_state)

    def clear_now(self) -> bool:
        """Reset the snapshot file to ``{}`` before returning."""
        return self._clear_state()

    def read_history(self, limit: Optional[int] = None) -> List[LoggedAction]:
        """
        Parse the history file.

        Lines that fail to parse (such as a truncated final line) are skipped.
        """
        if not self.history_path.exists():
            return []

        entries: List[LoggedAction] = []
        with self.history_path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(LoggedAction.model_validate(json.loads(line)))
                except ValueError as e:
                    logger.warning(f"Skipping unreadable history line {lineno}: {e}")
        if limit is not None:
            return entries[-limit:] if limit > 0 else []
        return entries

    def read_snapshot(self) -> Optional[StateSnapshot]:
        """Latest snapshot, or None when cleared, missing or unreadable."""
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not data:
            return None
        try:
            return StateSnapshot.model_validate(data)
        except ValueError:
            return None

    def flush(self, timeout: Optional[float] = None) -> None:
        self._queue.flush(timeout=timeout)

    def close(self) -> None:
        self._queue.close()

    # -- worker-side writes ------------------------------------------------------

    def _append_history(self, entry: LoggedAction) -> None:
        try:
            if not self.history_path.exists():
                write_atomic(b"", self.history_path, permissions=LOG_FILE_MODE)
            with self.history_path.open("a", encoding="utf-8") as f:
                f.write(entry.to_line())
        except (AtomicWriteError, OSError) as e:
            logger.warning(f"Failed to append history entry {entry.action}: {e}")

    def _write_state(self, state: StateSnapshot) -> None:
        try:
            write_json_atomic(state.to_dict(), self.state_path, permissions=LOG_FILE_MODE)
        except (AtomicWriteError, OSError) as e:
            logger.warning(f"Failed to write state snapshot {state.action}: {e}")

    def _clear_state(self) -> bool:
        try:
            write_atomic(b"{}", self.state_path, permissions=LOG_FILE_MODE)
        except (AtomicWriteError, OSError) as e:
            logger.warning(f"Failed to clear state file {self.state_path}: {e}")
            return False
        logger.info("Cleared state file")
        return True
