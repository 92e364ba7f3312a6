"""Configuration management for SubMiner."""

from .config import SubMinerConfig
from .config_manager import ConfigManager
from .defaults import create_default_config

__all__ = ["SubMinerConfig", "ConfigManager", "create_default_config"]
