"""Configuration management for TASKFLOW."""

from taskflow.config.manager import ConfigManager
from taskflow.config.settings import CONFIG_FILE, Settings

__all__ = ["ConfigManager", "Settings", "CONFIG_FILE"]
