"""
Action Models — Pydantic schemas for the audit trail.

LoggedAction is one line of the history log (NDJSON). StateSnapshot is
the single object kept in the snapshot file, always describing the most
recent action only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ActionName:
    """Names written to the history and snapshot files."""

    INITIAL = "initial"
    REBOOT_NOW = "reboot_now"

    @staticmethod
    def delay(seconds: int) -> str:
        return f"delay_{seconds}"


@dataclass(frozen=True)
class CountdownSnapshot:
    """Immutable copy of the countdown at the moment an action is logged."""

    remaining_seconds: int
    allowed_delay_options: Tuple[int, ...] = ()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or _utc_now()
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


class LoggedAction(BaseModel):
    """One immutable history entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: str = Field(default_factory=iso_timestamp)
    action: str
    remaining_seconds: int = Field(alias="remainingSeconds", ge=0)

    def to_line(self) -> str:
        return self.model_dump_json(by_alias=True) + "\n"


class StateSnapshot(BaseModel):
    """Content of the snapshot file after an action."""

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=iso_timestamp)
    action: str
    remaining_seconds: int = Field(ge=0)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
