"""Shared infrastructure: logging, configuration files and paths."""

from .config_manager import ConfigManager, get_config_manager
from .logging_config import configure_logging
from .logging_utils import LoggerLike, StructuredLogger, ensure_structured_logger, get_module_logger

__all__ = [
    "ConfigManager",
    "LoggerLike",
    "StructuredLogger",
    "configure_logging",
    "ensure_structured_logger",
    "get_config_manager",
    "get_module_logger",
]
