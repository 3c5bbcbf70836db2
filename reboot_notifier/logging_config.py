"""
Logging Configuration — Diagnostics for the notifier, separate from the action history.

The action history and snapshot files are the audit record of what the
operator chose. These logs explain how the agent got there: which log
directory was picked, which config keys were normalized, and every write
that failed. They go to stderr so a launch agent or systemd unit can
capture them:

- `LOG_FORMAT=json`: one object per line for an endpoint log forwarder;
  records about an action carry `action` and `remaining_seconds` so they
  can be joined with the history file
- `LOG_FORMAT=text`: compact lines for someone watching `reboot-notifier run`

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from reboot_notifier.logging_config import setup_logging

    setup_logging()  # Call once at startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    {"ts": "...", "level": "INFO", "logger": "reboot_notifier.engine.coordinator",
     "message": "Reboot now requested", "action": "reboot_now", "remaining_seconds": 0}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "action"):
            log_entry["action"] = record.action
        if hasattr(record, "remaining_seconds"):
            log_entry["remaining_seconds"] = record.remaining_seconds

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Terminal lines, colored only when stderr is a tty.

    12:34:56 ERROR   [config_store   ] Failed writing config ...
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = record.levelname
        if sys.stderr.isatty():
            color = self.COLORS.get(level, "")
            level = f"{color}{level:7}{self.RESET}"
        else:
            level = f"{level:7}"

        module = record.name.split(".")[-1][:15]
        line = f"{time_str} {level} [{module:15}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
) -> None:
    """
    Route all notifier loggers to one stderr handler.

    Called once when the CLI module is imported. Replaces existing root
    handlers, so calling it again switches format or level in place.

    Args:
        level: DEBUG, INFO, WARNING or ERROR; LOG_LEVEL, else INFO.
               Unknown names fall back to INFO.
        format_type: json or text; LOG_FORMAT, else text.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).lower()

    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)
    root.addHandler(handler)

    logging.getLogger(__name__).debug(
        f"Logging configured: level={log_level}, format={log_format}"
    )
