"""Configuration module for code-memory."""

from code_memory.config.logging import configure_logging, get_logger
from code_memory.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_logger", "get_settings"]
