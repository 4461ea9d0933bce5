"""Centralized logging configuration for Fret Tuner.

This module provides a consistent way to configure logging across the application.
"""

import logging
import sys
from typing import Dict, Optional

PACKAGE = "fret_tuner"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "fret_tuner": logging.INFO,
    "fret_tuner.cli": logging.INFO,
    # Pitch math is pure, keep it quiet unless debugging
    "fret_tuner.note_utils": logging.WARNING,
    "fret_tuner.pitch": logging.WARNING,
    "fret_tuner.core": logging.INFO,
    "fret_tuner.synchronizer": logging.INFO,
    "fret_tuner.services": logging.INFO,  # Set to DEBUG for per-block detection info
    "fret_tuner.logging_config": logging.WARNING,  # Keep setup chatter quiet
    # Libraries/third-party
    "aubio": logging.ERROR,
    "sounddevice": logging.ERROR,
    "asyncio": logging.WARNING,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None

# Cache for loggers handed out by get_logger
_logger_cache: Dict[str, logging.Logger] = {}


def setup_logging(level: Optional[str] = None) -> None:
    """Route fret_tuner and library loggers to one stdout handler.

    Args:
        level: If provided, override all 'fret_tuner' log levels with this level (e.g., "DEBUG").
    """
    handler = _shared_handler()
    override = _parse_level(level)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        if override is not None and module_name.startswith(PACKAGE):
            module_level = override
        # Child loggers (fret_tuner.core.config, ...) propagate to these
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)
        logger.handlers = [handler]
        logger.propagate = False

    logging.getLogger(PACKAGE).debug("Logging configured")


def _shared_handler() -> logging.Handler:
    global _console_handler
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return _console_handler


def _parse_level(level: Optional[str]) -> Optional[int]:
    if not level:
        return None
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        logging.getLogger(__name__).error(f"Invalid log level: {level}")
        return None
    return numeric_level


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Loggers are created lazily and cached. Levels and handlers come from
    setup_logging(); until it runs, records follow the standard logging defaults.

    Args:
        name: The full module name (e.g., 'fret_tuner.synchronizer')

    Returns:
        A logger instance, shared across calls with the same name
    """
    if name not in _logger_cache:
        _logger_cache[name] = logging.getLogger(name)
    return _logger_cache[name]
