"""
Time Formatting — Human-readable countdown and delay labels.
"""

from __future__ import annotations

import re

MAX_BODY_CHARS = 100


def format_countdown(seconds: int) -> str:
    """
    Format remaining time.

    ``HH:MM hours`` at or above one hour, otherwise ``MM:SS minutes``.
    Negative values are treated as zero.
    """
    clamped = max(0, seconds)
    if clamped >= 3600:
        return f"{clamped // 3600:02d}:{(clamped % 3600) // 60:02d} hours"
    return f"{clamped // 60:02d}:{clamped % 60:02d} minutes"


def format_delay_label(seconds: int) -> str:
    """Menu label for a delay option, e.g. "Remind in 30 min"."""
    if seconds >= 3600 and seconds % 3600 == 0:
        hours = seconds // 3600
        return "Remind in 1 hr" if hours == 1 else f"Remind in {hours} hrs"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return "Remind in 1 min" if minutes == 1 else f"Remind in {minutes} min"
    return f"Remind in {seconds}s"


def limit_message(raw: str, max_chars: int = MAX_BODY_CHARS) -> str:
    """Collapse whitespace and cap the notice body, appending an ellipsis."""
    text = re.sub(r"[\n\r\t]+", " ", raw)
    text = re.sub(r" +", " ", text).strip()
    if len(text) > max_chars:
        text = text[:max_chars].rstrip() + "…"
    return text
