"""
Config Module — Runtime settings and writable path resolution.
"""

from .paths import ResolvedPaths, resolve_paths
from .settings import NotifierSettings, load_settings, parse_delay_options

__all__ = [
    "NotifierSettings",
    "ResolvedPaths",
    "load_settings",
    "parse_delay_options",
    "resolve_paths",
]
