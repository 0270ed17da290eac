"""Core configuration, logging and exception utilities."""

from hiveflow.core.config import Settings, get_settings, settings

__all__ = [
    "Settings",
    "get_settings",
    "settings",
]
