"""Configuration: environment settings and per-source definitions."""

from taurobot.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
