"""
Utilities Module
================

Common utilities shared across the application:
- logger: Leveled logging with per-component context
- config: Centralized configuration management
"""

from kira.utils.logger import Logger, logger
from kira.utils.config import get_config, Config

__all__ = ["Logger", "logger", "get_config", "Config"]
