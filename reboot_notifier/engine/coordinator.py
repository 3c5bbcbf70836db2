"""
Reboot Coordinator — Drives the countdown and applies the expiry policy.

Once per second the coordinator ticks the countdown. When it reaches zero
the policy runs exactly once:

1. If the config still has delay credit and a delay option exists, the
   smallest option is applied to the countdown and the config, the delay
   is logged, and the coordinator terminates.
2. Otherwise it reboots now: logs ``reboot_now``, sets the flag, clears
   the scheduled status, and terminates.

Operator choices (delay / reboot now) go through the same paths. Other
threads hand them over with post_delay() / post_reboot_now(); the tick
loop drains them, so only the loop thread touches the countdown. The
decision is made from in-memory state; disk writes are best effort.

## Usage

    coordinator = RebootCoordinator(countdown, store, action_log)
    coordinator.start()
    coordinator.post_delay(1800)     # from any thread
    decision = coordinator.run()     # blocks until terminated or stop()
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent import futures
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..models.action import ActionName
from ..models.config import RebootConfig
from ..persistence.action_log import ActionLog
from ..persistence.config_store import ConfigStore
from .countdown import CountdownState
from .time_format import format_countdown, format_delay_label, limit_message

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Device will reboot shortly"
GRACEFUL_TITLE = "Reboot Required"
FORCED_TITLE = "Device Will Reboot Shortly"

# Bound on waiting for queued writes before terminating.
FLUSH_TIMEOUT_SECONDS = 5.0


class Decision(str, Enum):
    """How the coordinator finished."""

    DELAYED = "delayed"
    REBOOT_NOW = "reboot_now"


@dataclass
class TickOutcome:
    """Result of one tick."""

    remaining_seconds: int
    expired: bool = False
    decision: Optional[Decision] = None
    delay_seconds: Optional[int] = None

    @property
    def terminated(self) -> bool:
        return self.decision is not None


@dataclass
class Notice:
    """Text shown to the operator."""

    title: str
    body: str
    countdown_text: str
    delay_choices: List[Tuple[int, str]] = field(default_factory=list)


class RebootCoordinator:
    """
    Owns the CountdownState and ties it to the config store and action log.

    All methods except stop(), post_delay() and post_reboot_now() must be
    called from the thread running the tick loop.
    """

    def __init__(
        self,
        countdown: CountdownState,
        config: ConfigStore,
        action_log: ActionLog,
        on_terminate: Optional[Callable[[Decision], None]] = None,
    ):
        self.countdown = countdown
        self.config = config
        self.action_log = action_log
        self._on_terminate = on_terminate
        self._decision: Optional[Decision] = None
        self._expiry_handled = False
        self._stop = threading.Event()
        # Delay seconds, or None for reboot now.
        self._commands: queue.Queue = queue.Queue()
        self._config_writes: List[futures.Future] = []
        self._config_saved: Optional[bool] = None

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Reset leftovers from a previous run and record the initial state."""
        self._stop.clear()
        if self.config.has_key("scheduled_time"):
            self.config.clear_scheduled_status()
            logger.info("Starting with fresh countdown, cleared previous scheduled time")

        self.action_log.clear_now()
        self.action_log.write_snapshot(ActionName.INITIAL, self.countdown.snapshot())

        logger.info(
            f"Countdown started: {self.countdown.remaining_seconds}s, "
            f"options={list(self.countdown.allowed_delay_options)}, "
            f"credit={self.config.delay_counter}, mode={self.config.reboot_config.name}"
        )

    def run(
        self,
        sleep: Optional[Callable[[float], None]] = None,
        interval: float = 1.0,
        on_refresh: Optional[Callable[[TickOutcome], None]] = None,
    ) -> Optional[Decision]:
        """
        Tick until a decision is made or stop() is called.

        The first tick fires immediately. Returns the decision, or None
        when stopped before one was reached.
        """
        while self._decision is None and not self._stop.is_set():
            self._drain_commands()
            if self._decision is not None:
                break
            outcome = self.on_tick()
            if on_refresh is not None:
                on_refresh(outcome)
            if outcome.terminated:
                break
            if sleep is not None:
                sleep(interval)
            else:
                self._stop.wait(interval)
        return self._decision

    def stop(self) -> None:
        """Cancel the tick loop at the next tick boundary."""
        self._stop.set()

    @property
    def decision(self) -> Optional[Decision]:
        return self._decision

    @property
    def terminated(self) -> bool:
        return self._decision is not None

    @property
    def config_saved(self) -> Optional[bool]:
        """Whether the decision's config changes reached disk; None before a decision."""
        return self._config_saved

    # -- tick ------------------------------------------------------------------

    def on_tick(self) -> TickOutcome:
        if self._decision is not None:
            return TickOutcome(self.countdown.remaining_seconds, decision=self._decision)

        self.countdown.tick()
        outcome = TickOutcome(remaining_seconds=self.countdown.remaining_seconds)
        if not self.countdown.is_expired or self._expiry_handled:
            return outcome

        outcome.expired = True
        self._expiry_handled = True
        self._handle_expiry(outcome)
        outcome.remaining_seconds = self.countdown.remaining_seconds
        return outcome

    def _handle_expiry(self, outcome: TickOutcome) -> None:
        logger.info("Countdown expired")
        smallest = self.countdown.smallest_delay
        credit = self.config.delay_counter
        if credit > 0 and smallest is not None:
            logger.info(f"Auto-applying smallest delay {smallest}s (credit={credit})")
            if self.countdown.apply_delay(smallest):
                self._config_writes.append(self.config.apply_delay(smallest))
                self.action_log.record(ActionName.delay(smallest), self.countdown.snapshot())
                outcome.delay_seconds = smallest
            outcome.decision = Decision.DELAYED
            self._terminate(Decision.DELAYED)
        else:
            self.reboot_now()
            outcome.decision = Decision.REBOOT_NOW

    # -- operator actions --------------------------------------------------------

    @property
    def can_delay(self) -> bool:
        if not self.countdown.allowed_delay_options:
            return False
        if self.config.reboot_config == RebootConfig.FORCE_AFTER_PATCH:
            return False
        return self.config.delay_counter > 0

    def request_delay(self, seconds: int) -> bool:
        """
        Operator picked a delay.

        Returns False (nothing changes) if delays are unavailable or
        `seconds` is not an allowed option.
        """
        if self._decision is not None:
            return False
        if not self.can_delay:
            logger.warning(f"Delay {seconds}s refused: no delay available")
            return False
        if not self.countdown.apply_delay(seconds):
            logger.warning(f"Delay {seconds}s rejected: not one of {list(self.countdown.allowed_delay_options)}")
            return False

        self.action_log.record(ActionName.delay(seconds), self.countdown.snapshot())
        self._config_writes.append(self.config.apply_delay(seconds))
        logger.info(
            f"Delay applied: +{seconds}s, remaining={self.countdown.remaining_seconds}s",
            extra={"action": ActionName.delay(seconds), "remaining_seconds": self.countdown.remaining_seconds},
        )
        self._terminate(Decision.DELAYED)
        return True

    def post_delay(self, seconds: int) -> None:
        """Queue an operator delay for the tick loop. Safe from any thread."""
        self._commands.put(seconds)

    def post_reboot_now(self) -> None:
        """Queue an operator reboot-now for the tick loop. Safe from any thread."""
        self._commands.put(None)

    def reboot_now(self) -> None:
        """Operator (or expiry) asked for an immediate reboot."""
        if self._decision is not None:
            return
        self.action_log.record(ActionName.REBOOT_NOW, self.countdown.snapshot())
        self._config_writes.append(self.config.set_reboot_now())
        self._config_writes.append(self.config.clear_scheduled_status())
        logger.info(
            "Reboot now requested",
            extra={"action": ActionName.REBOOT_NOW, "remaining_seconds": self.countdown.remaining_seconds},
        )
        self._terminate(Decision.REBOOT_NOW)

    # -- display -----------------------------------------------------------------

    def notice(self) -> Notice:
        mode = self.config.reboot_config
        credit = self.config.delay_counter

        title = DEFAULT_TITLE
        if mode == RebootConfig.GRACEFUL and credit != 0:
            title = GRACEFUL_TITLE
        elif mode == RebootConfig.FORCE_AFTER_PATCH:
            title = FORCED_TITLE

        choices: List[Tuple[int, str]] = []
        if self.can_delay:
            choices = [(s, format_delay_label(s)) for s in self.countdown.allowed_delay_options]

        return Notice(
            title=title,
            body=limit_message(self.config.custom_message),
            countdown_text=f"Auto reboot in {format_countdown(self.countdown.remaining_seconds)}.",
            delay_choices=choices,
        )

    # -- internals ---------------------------------------------------------------

    def _drain_commands(self) -> None:
        while self._decision is None:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            if command is None:
                self.reboot_now()
            else:
                self.request_delay(command)

    def _terminate(self, decision: Decision) -> None:
        self._decision = decision
        self._stop.set()
        try:
            self.action_log.flush(timeout=FLUSH_TIMEOUT_SECONDS)
            self.config.flush(timeout=FLUSH_TIMEOUT_SECONDS)
        except futures.TimeoutError as e:
            logger.error(f"Pending writes did not finish before termination: {e}")
        self._config_saved = all(f.done() and f.result() for f in self._config_writes)
        if not self._config_saved:
            logger.error(f"Decision {decision.value} made but the config file was not updated")
        logger.info(f"Terminating: {decision.value}")
        if self._on_terminate is not None:
            self._on_terminate(decision)
