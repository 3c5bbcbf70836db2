"""
Serial Queue — Fire-and-forget work applied strictly in submission order.

One worker thread drains a FIFO queue, so a call submitted second is
always applied after the first even when the caller never waits.

## Usage

    queue = SerialQueue("action-log")
    queue.submit(write_line, "a")
    queue.submit(write_line, "b")   # runs after "a"
    queue.flush()                   # wait for both
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class QueueClosedError(RuntimeError):
    """Work was submitted after the queue was closed."""


class SerialQueue:
    """Single-worker executor with flush/close helpers."""

    def __init__(self, name: str):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._closed = False

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue `fn` and return immediately with its future."""
        if self._closed:
            raise QueueClosedError(f"Queue {self.name} is closed")
        return self._executor.submit(fn, *args, **kwargs)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until everything submitted so far has run."""
        if self._closed:
            return
        self._executor.submit(lambda: None).result(timeout=timeout)

    def close(self) -> None:
        """Drain pending work and stop the worker."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        logger.debug(f"Queue {self.name} closed")

    @property
    def closed(self) -> bool:
        return self._closed
