"""Configuration module for xdportal."""

from xdportal.config.loader import get_config_path, load_config, save_config
from xdportal.config.schema import BusConfig, LoggingConfig, PortalConfig

__all__ = ["PortalConfig", "BusConfig", "LoggingConfig", "load_config", "save_config", "get_config_path"]
