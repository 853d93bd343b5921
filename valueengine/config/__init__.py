"""Configuration for the value engine."""

from valueengine.config.logs import configure_logging
from valueengine.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
