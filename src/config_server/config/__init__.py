"""Configuration module for Config Server."""

from config_server.config.logging import configure_logging
from config_server.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
