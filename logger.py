"""
Structured logging for the interpreter pipeline.
"""

import logging
import sys
from typing import Dict

from config import Config


class Logger:
    """Centralized logging with consistent formatting."""

    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get or create a logger with standard configuration."""
        if name in cls._loggers:
            return cls._loggers[name]

        logger = logging.getLogger(name)

        level_name = 'DEBUG' if Config.VERBOSE else Config.LOG_LEVEL
        logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))

        # Only add handler if logger doesn't have one
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        cls._loggers[name] = logger
        return logger

    @classmethod
    def set_level(cls, level_name: str):
        """Change the level of every logger handed out so far."""
        level = getattr(logging, level_name.upper(), logging.INFO)
        for logger in cls._loggers.values():
            logger.setLevel(level)


def get_logger(module_name: str) -> logging.Logger:
    """Convenience function to get a logger for a module."""
    return Logger.get_logger(module_name)
