"""
Concurrency Module — Ordered background work and shared/exclusive locking.
"""

from .rwlock import ReadWriteLock
from .serial_queue import QueueClosedError, SerialQueue

__all__ = [
    "ReadWriteLock",
    "SerialQueue",
    "QueueClosedError",
]
