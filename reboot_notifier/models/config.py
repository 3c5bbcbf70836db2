"""
Config Document — Schema-flexible view of the notifier JSON config.

The document is a plain key → JSON value mapping. Known keys are read
through typed accessors that fall back to a default when the stored value
has the wrong type; unknown keys are carried along untouched so an
external tool's fields survive every rewrite.

## Known keys

| key              | type   | default                                          |
|------------------|--------|--------------------------------------------------|
| custom_message   | str    | "Reboot required to complete important updates." |
| reboot_config    | str    | RebootConfig.OTHER                               |
| delay_counter    | int    | 0                                                |
| scheduled_time   | str    | ""                                               |
| task_scheduled   | bool   | False                                            |
| reboot_now       | bool   | False                                            |
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

JSONValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]

DEFAULT_MESSAGE = "Reboot required to complete important updates."
SCHEDULED_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

KEY_CUSTOM_MESSAGE = "custom_message"
KEY_REBOOT_CONFIG = "reboot_config"
KEY_DELAY_COUNTER = "delay_counter"
KEY_SCHEDULED_TIME = "scheduled_time"
KEY_TASK_SCHEDULED = "task_scheduled"
KEY_REBOOT_NOW = "reboot_now"

# (legacy, canonical)
LEGACY_KEYS: Tuple[Tuple[str, str], ...] = (
    ("customMessage", KEY_CUSTOM_MESSAGE),
    ("rebootConfig", KEY_REBOOT_CONFIG),
    ("delayCounter", KEY_DELAY_COUNTER),
    ("scheduledTime", KEY_SCHEDULED_TIME),
    ("rebootNow", KEY_REBOOT_NOW),
)


class RebootConfig(str, Enum):
    """Reboot policy mode."""

    GRACEFUL = "Graceful Reboot"
    FORCE_AFTER_PATCH = "Force reboot after patch deployment"
    OTHER = "other"

    @classmethod
    def from_raw(cls, raw: Any) -> "RebootConfig":
        if isinstance(raw, str):
            stripped = raw.strip()
            if stripped == cls.GRACEFUL.value:
                return cls.GRACEFUL
            if stripped == cls.FORCE_AFTER_PATCH.value:
                return cls.FORCE_AFTER_PATCH
        return cls.OTHER


def decode_int(value: Any, default: int = 0) -> int:
    # bool is an int subclass; JSON true is not a counter
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def decode_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    return default


def decode_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    return default


class ConfigParseError(ValueError):
    """Config bytes are not a JSON object."""


class ConfigDocument:
    """Key → JSON value map with typed accessors for the known fields."""

    def __init__(self, data: Optional[Dict[str, JSONValue]] = None):
        self._data: Dict[str, JSONValue] = dict(data or {})

    @classmethod
    def from_bytes(cls, raw: bytes) -> "ConfigDocument":
        """
        Parse a config file's bytes.

        Raises:
            ConfigParseError: Empty input, invalid JSON, or a non-object root
        """
        if not raw.strip():
            raise ConfigParseError("config file is empty")
        try:
            obj = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigParseError(f"invalid JSON: {e}") from e
        if not isinstance(obj, dict):
            raise ConfigParseError(f"expected a JSON object, got {type(obj).__name__}")
        return cls(obj)

    # -- raw access --------------------------------------------------------

    def get(self, key: str, default: JSONValue = None) -> JSONValue:
        return self._data.get(key, default)

    def set(self, key: str, value: JSONValue) -> None:
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def to_dict(self) -> Dict[str, JSONValue]:
        """Deep copy of the underlying mapping."""
        return copy.deepcopy(self._data)

    def copy(self) -> "ConfigDocument":
        return ConfigDocument(copy.deepcopy(self._data))

    # -- typed accessors ---------------------------------------------------

    @property
    def custom_message(self) -> str:
        message = decode_str(self._data.get(KEY_CUSTOM_MESSAGE)).strip()
        return message or DEFAULT_MESSAGE

    @property
    def reboot_config(self) -> RebootConfig:
        return RebootConfig.from_raw(self._data.get(KEY_REBOOT_CONFIG))

    @property
    def delay_counter(self) -> int:
        return decode_int(self._data.get(KEY_DELAY_COUNTER))

    @property
    def scheduled_time(self) -> str:
        return decode_str(self._data.get(KEY_SCHEDULED_TIME))

    @property
    def task_scheduled(self) -> bool:
        return decode_bool(self._data.get(KEY_TASK_SCHEDULED))

    @property
    def reboot_now(self) -> bool:
        return decode_bool(self._data.get(KEY_REBOOT_NOW))

    # -- mutations ---------------------------------------------------------

    def normalize_legacy_keys(self) -> bool:
        """
        Move camelCase keys to their snake_case names.

        The canonical value wins when both are present; the legacy key is
        always removed. Returns True if anything changed.
        """
        changed = False
        for legacy, canonical in LEGACY_KEYS:
            if legacy in self._data:
                value = self._data.pop(legacy)
                if canonical not in self._data:
                    self._data[canonical] = value
                changed = True
        return changed

    def set_reboot_now(self) -> None:
        self._data[KEY_REBOOT_NOW] = True

    def clear_scheduled_status(self) -> None:
        self._data[KEY_SCHEDULED_TIME] = ""
        self._data[KEY_TASK_SCHEDULED] = False

    def apply_delay(self, seconds: int, now: Optional[datetime] = None) -> None:
        """
        Consume one delay credit (if any) and schedule the reboot `seconds` out.

        A missing or zero counter is left as is.
        """
        # Raises OverflowError past year 9999, before anything is changed.
        when = (now or datetime.now()) + timedelta(seconds=seconds)
        current = self.delay_counter
        if current > 0:
            self._data[KEY_DELAY_COUNTER] = current - 1
        self._data[KEY_SCHEDULED_TIME] = when.strftime(SCHEDULED_TIME_FORMAT)
        self._data[KEY_TASK_SCHEDULED] = False
        self._data[KEY_REBOOT_NOW] = False

    def __repr__(self) -> str:
        return f"ConfigDocument({self._data!r})"
