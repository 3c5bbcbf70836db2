"""
Countdown State — Remaining seconds and the delay options that may extend it.

Counting (remaining > 0) moves to Expired (remaining == 0) one tick at a
time. Only apply_delay can move the countdown back up.

This object is not thread-safe; it is owned by the coordinator and only
touched from the tick loop.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from ..models.action import CountdownSnapshot


class CountdownState:
    """Reboot countdown with a fixed set of allowed delays."""

    def __init__(
        self,
        initial_seconds: int,
        allowed_delay_options: Iterable[int],
        max_total_delay: Optional[int] = None,
    ):
        if initial_seconds < 0:
            raise ValueError(f"initial_seconds must be >= 0, got {initial_seconds}")
        options = sorted(set(allowed_delay_options))
        if any(o <= 0 for o in options):
            raise ValueError(f"delay options must be positive, got {options}")

        self._remaining = initial_seconds
        self.allowed_delay_options: Tuple[int, ...] = tuple(options)
        # Accepted for configuration compatibility; apply_delay does not enforce it.
        self.max_total_delay = max_total_delay

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def is_expired(self) -> bool:
        return self._remaining == 0

    @property
    def smallest_delay(self) -> Optional[int]:
        return self.allowed_delay_options[0] if self.allowed_delay_options else None

    def tick(self) -> None:
        """Count down one second, stopping at zero."""
        if self._remaining > 0:
            self._remaining -= 1

    def apply_delay(self, seconds: int) -> bool:
        """
        Add `seconds` to the countdown.

        Returns False without changing anything unless `seconds` is one of
        the allowed options.
        """
        if seconds not in self.allowed_delay_options:
            return False
        self._remaining += seconds
        return True

    def snapshot(self) -> CountdownSnapshot:
        return CountdownSnapshot(
            remaining_seconds=self._remaining,
            allowed_delay_options=self.allowed_delay_options,
        )

    def __repr__(self) -> str:
        return (
            f"CountdownState(remaining_seconds={self._remaining}, "
            f"allowed_delay_options={list(self.allowed_delay_options)})"
        )
