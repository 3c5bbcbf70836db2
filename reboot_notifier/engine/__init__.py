"""
Engine Module — Countdown state machine and the coordinator that drives it.
"""

from .coordinator import Decision, Notice, RebootCoordinator, TickOutcome
from .countdown import CountdownState

__all__ = [
    "CountdownState",
    "Decision",
    "Notice",
    "RebootCoordinator",
    "TickOutcome",
]
