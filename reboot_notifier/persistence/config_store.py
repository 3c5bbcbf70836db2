"""
Config Store — Concurrent in-memory mirror of the notifier config file.

Reads run in parallel under a shared lock. Every mutation runs on a single
background worker holding the exclusive lock, so mutations apply in the
order they were submitted and no reader ever sees a half-applied change.
After each mutation the full document is written with write_atomic.

Disk is a best-effort mirror: if a write fails the error is logged and the
in-memory document stays authoritative for the rest of the process.

## Usage

    store = ConfigStore(paths.config_file)
    if store.delay_counter > 0:
        store.apply_delay(1800)          # returns a Future immediately
    store.flush()                         # wait for queued writes
"""

from __future__ import annotations

import copy
import logging
from concurrent.futures import Future
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from ..concurrency import ReadWriteLock, SerialQueue
from ..models.config import ConfigDocument, ConfigParseError, JSONValue, RebootConfig
from .atomic_write import AtomicWriteError, write_json_atomic

logger = logging.getLogger(__name__)

CONFIG_FILE_MODE = 0o644


class ConfigStore:
    """Owns the ConfigDocument and its file."""

    def __init__(self, path: Union[str, Path], autoload: bool = True):
        self.path = Path(path).expanduser()
        self._doc = ConfigDocument()
        self._lock = ReadWriteLock()
        self._queue = SerialQueue("config-store")
        logger.info(f"Config file: {self.path}")
        if autoload:
            self.load()

    # -- load ----------------------------------------------------------------

    def load(self) -> None:
        """
        Replace the in-memory document with the file's contents.

        Missing, empty, unreadable or non-object files yield an empty
        document, which is written back. Legacy camelCase keys are
        normalized and the result is persisted.
        """
        self._queue.submit(self._load_exclusive).result()

    def reload(self) -> None:
        """Re-read the file, discarding unpersisted in-memory changes."""
        self.load()

    def _load_exclusive(self) -> None:
        with self._lock.write():
            doc = self._read_file()
            if doc is None:
                self._doc = ConfigDocument()
                self._persist_locked()
                return

            self._doc = doc
            if self._doc.normalize_legacy_keys():
                logger.info("Normalized legacy config keys")
                self._persist_locked()

    def _read_file(self) -> Optional[ConfigDocument]:
        if not self.path.exists():
            logger.info(f"Config file does not exist at {self.path}, creating an empty one")
            return None
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            logger.warning(f"Failed reading config {self.path}: {e}; starting empty")
            return None
        try:
            return ConfigDocument.from_bytes(raw)
        except ConfigParseError as e:
            logger.warning(f"Discarding unusable config {self.path}: {e}")
            return None

    # -- persistence -----------------------------------------------------------

    def _persist_locked(self) -> bool:
        """Write the document. Caller holds the exclusive lock."""
        try:
            write_json_atomic(self._doc.to_dict(), self.path, permissions=CONFIG_FILE_MODE)
        except (AtomicWriteError, OSError) as e:
            logger.error(f"Failed writing config {self.path}: {e}")
            return False
        logger.debug(f"Config persisted → {self.path}")
        return True

    def _mutate(self, description: str, block: Callable[[ConfigDocument], None]) -> Future:
        def run() -> bool:
            with self._lock.write():
                # Mutate a copy so a failing block leaves the document untouched.
                updated = self._doc.copy()
                try:
                    block(updated)
                except Exception as e:
                    logger.error(f"Config mutation failed: {description}: {e}", exc_info=True)
                    return False
                self._doc = updated
                persisted = self._persist_locked()
            logger.info(f"Config mutation applied: {description} (persisted={persisted})")
            return persisted

        return self._queue.submit(run)

    # -- mutations -------------------------------------------------------------

    def set_reboot_now(self) -> Future:
        return self._mutate("reboot_now=true", lambda doc: doc.set_reboot_now())

    def clear_scheduled_status(self) -> Future:
        return self._mutate("clear scheduled status", lambda doc: doc.clear_scheduled_status())

    def apply_delay(self, seconds: int, now: Optional[datetime] = None) -> Future:
        """
        Consume a delay credit and reschedule.

        This does not check the countdown's allowed options; callers must
        have had CountdownState.apply_delay accept `seconds` first.
        """
        return self._mutate(
            f"delay {seconds}s",
            lambda doc: doc.apply_delay(seconds, now=now),
        )

    # -- reads -----------------------------------------------------------------

    def snapshot(self) -> ConfigDocument:
        """Independent copy of the current document."""
        with self._lock.read():
            return self._doc.copy()

    def get(self, key: str, default: JSONValue = None) -> JSONValue:
        with self._lock.read():
            return copy.deepcopy(self._doc.get(key, default))

    def has_key(self, key: str) -> bool:
        with self._lock.read():
            return key in self._doc

    @property
    def custom_message(self) -> str:
        with self._lock.read():
            return self._doc.custom_message

    @property
    def reboot_config(self) -> RebootConfig:
        with self._lock.read():
            return self._doc.reboot_config

    @property
    def delay_counter(self) -> int:
        with self._lock.read():
            return self._doc.delay_counter

    @property
    def scheduled_time(self) -> str:
        with self._lock.read():
            return self._doc.scheduled_time

    @property
    def task_scheduled(self) -> bool:
        with self._lock.read():
            return self._doc.task_scheduled

    @property
    def reboot_now_flag(self) -> bool:
        with self._lock.read():
            return self._doc.reboot_now

    # -- lifecycle -------------------------------------------------------------

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for every mutation submitted so far."""
        self._queue.flush(timeout=timeout)

    def close(self) -> None:
        self._queue.close()

    def __enter__(self) -> "ConfigStore":
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()
