"""Configuration management."""

from .config_manager import ConfigManager
from .models import AppConfig, CrossChainConfig

__all__ = ["ConfigManager", "AppConfig", "CrossChainConfig"]
