"""
Structured logging for irmetrics.

Provides a standardized logger for all irmetrics modules with:
- Structured output (timestamps, log levels, module names)
- Configurable log levels (IRM_LOG_LEVEL environment variable)
- File and console output support
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = "irmetrics",
    level: str = "INFO",
    log_file: Optional[Path] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Set up a structured logger.

    Args:
        name: Logger name (typically module name)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        stream: Console stream (default: sys.stdout)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("irmetrics.evaluation", level="DEBUG")
        >>> logger.info("Evaluating 50 queries")
    """
    logger = logging.getLogger(name)

    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with default configuration.

    Uses environment variable IRM_LOG_LEVEL if set.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance

    Example:
        >>> from irmetrics.utils.logger import get_logger
        >>> logger = get_logger(__name__)
    """
    level = os.getenv("IRM_LOG_LEVEL", "INFO")
    return setup_logger(name, level=level)


def set_level(level: str) -> None:
    """Change the level of every irmetrics logger created so far."""
    resolved = getattr(logging, level.upper())
    for name, existing in logging.Logger.manager.loggerDict.items():
        if name.startswith("irmetrics") and isinstance(existing, logging.Logger):
            existing.setLevel(resolved)


def set_stream(stream: TextIO) -> Optional[TextIO]:
    """
    Point the console handler of every irmetrics logger at another stream.

    File handlers are left alone. Returns the stream the console handlers
    used before, so the caller can restore it.
    """
    previous = None
    for name, existing in logging.Logger.manager.loggerDict.items():
        if not name.startswith("irmetrics") or not isinstance(existing, logging.Logger):
            continue
        for handler in existing.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                previous = handler.setStream(stream) or previous
    return previous


# Module-level logger for irmetrics
logger = get_logger("irmetrics")


__all__ = ["setup_logger", "get_logger", "set_level", "set_stream", "logger"]
