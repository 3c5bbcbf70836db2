"""
Settings — Countdown inputs and file locations.

Values come from, in increasing priority: built-in defaults, environment
variables (a ``.env`` file is loaded by the CLI first), and CLI options.

## Environment Variables

- REBOOT_COUNTDOWN_SECONDS: Initial countdown (default: 600)
- REBOOT_DELAY_OPTIONS: Comma-separated delay options in seconds, each at most 30 days (default: 1800,5400)
- REBOOT_MAX_TOTAL_DELAY: Optional cap on total delay (accepted, not enforced)
- REBOOT_CONFIG_FILE: Config document path (default: resolved)
- REBOOT_STATE_FILE: Snapshot file path (default: resolved)
- REBOOT_HISTORY_FILE: History log path (default: resolved)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .paths import ResolvedPaths, resolve_paths

logger = logging.getLogger(__name__)

DEFAULT_COUNTDOWN_SECONDS = 600
DEFAULT_DELAY_OPTIONS = [30 * 60, 90 * 60]
# Longest single deferral accepted.
MAX_DELAY_SECONDS = 30 * 24 * 60 * 60

ENV_COUNTDOWN = "REBOOT_COUNTDOWN_SECONDS"
ENV_DELAYS = "REBOOT_DELAY_OPTIONS"
ENV_MAX_TOTAL_DELAY = "REBOOT_MAX_TOTAL_DELAY"
ENV_CONFIG_FILE = "REBOOT_CONFIG_FILE"
ENV_STATE_FILE = "REBOOT_STATE_FILE"
ENV_HISTORY_FILE = "REBOOT_HISTORY_FILE"


class NotifierSettings(BaseModel):
    """Validated runtime settings."""

    countdown_seconds: int = Field(default=DEFAULT_COUNTDOWN_SECONDS, ge=0)
    delay_options: List[int] = Field(default_factory=lambda: list(DEFAULT_DELAY_OPTIONS))
    max_total_delay: Optional[int] = Field(default=None, ge=0)

    config_path: Optional[Path] = None
    state_path: Optional[Path] = None
    history_path: Optional[Path] = None

    @field_validator("delay_options", mode="before")
    @classmethod
    def _parse_delay_options(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_delay_options(value)
        return value

    @field_validator("delay_options")
    @classmethod
    def _check_delay_options(cls, value: List[int]) -> List[int]:
        if any(v <= 0 for v in value):
            raise ValueError("delay options must be positive")
        if any(v > MAX_DELAY_SECONDS for v in value):
            raise ValueError(f"delay options must be at most {MAX_DELAY_SECONDS} seconds")
        return sorted(set(value))

    def resolve_paths(self) -> ResolvedPaths:
        """Fill unset file paths from the writable-path resolver."""
        if self.config_path and self.state_path and self.history_path:
            state_path = self.state_path.expanduser()
            return ResolvedPaths(
                config_file=self.config_path.expanduser(),
                state_file=state_path,
                history_file=self.history_path.expanduser(),
                base_dir=state_path.parent,
            )

        resolved = resolve_paths()
        return ResolvedPaths(
            config_file=(self.config_path or resolved.config_file).expanduser(),
            state_file=(self.state_path or resolved.state_file).expanduser(),
            history_file=(self.history_path or resolved.history_file).expanduser(),
            base_dir=resolved.base_dir,
        )


def parse_delay_options(raw: str) -> List[int]:
    """Parse ``"1800, 5400"``; unparseable parts are dropped."""
    options: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            options.append(int(part))
        except ValueError:
            logger.warning(f"Ignoring invalid delay option {part!r}")
    return options


def _env_overrides() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    mapping = {
        ENV_COUNTDOWN: "countdown_seconds",
        ENV_DELAYS: "delay_options",
        ENV_MAX_TOTAL_DELAY: "max_total_delay",
        ENV_CONFIG_FILE: "config_path",
        ENV_STATE_FILE: "state_path",
        ENV_HISTORY_FILE: "history_path",
    }
    for env_key, field_name in mapping.items():
        raw = os.environ.get(env_key)
        if raw:
            values[field_name] = raw
    return values


def load_settings(**overrides: Any) -> NotifierSettings:
    """
    Build settings from the environment plus explicit overrides.

    Overrides that are None are ignored. Each environment value is
    validated on its own so one bad variable does not discard the rest.
    """
    values: Dict[str, Any] = {}
    for field_name, raw in _env_overrides().items():
        try:
            NotifierSettings(**{field_name: raw})
        except ValidationError as e:
            logger.error(f"Ignoring invalid environment value for {field_name}: {e.errors()[0]['msg']}")
            continue
        values[field_name] = raw

    values.update({k: v for k, v in overrides.items() if v is not None})
    settings = NotifierSettings(**values)
    # A list with every entry invalid falls back to the defaults.
    if not settings.delay_options:
        settings = settings.model_copy(update={"delay_options": list(DEFAULT_DELAY_OPTIONS)})
    return settings
