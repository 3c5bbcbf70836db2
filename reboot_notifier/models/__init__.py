"""
Models — Config document and audit trail schemas.
"""

from .action import ActionName, CountdownSnapshot, LoggedAction, StateSnapshot
from .config import ConfigDocument, ConfigParseError, RebootConfig

__all__ = [
    "ActionName",
    "CountdownSnapshot",
    "LoggedAction",
    "StateSnapshot",
    "ConfigDocument",
    "ConfigParseError",
    "RebootConfig",
]
