"""
Logging configuration for the HireBot backend.
Every component gets its own named logger with a shared format.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import LOG_LEVEL, LOG_FILE


def setup_logger(
    name: str = "hirebot",
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional file handler.

    Args:
        name: Logger name
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            If None, uses HIREBOT_LOG_LEVEL.
        log_file: Optional path to log file. If None, falls back to
            HIREBOT_LOG_FILE, and logs only to console when that is unset too.
        format_string: Custom format string. If None, uses default.

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("gemini_gateway", "INFO")
        >>> logger.info("Gemini API attempt 1/3")
    """
    log_level = (log_level or LOG_LEVEL).upper()
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level))

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[%(filename)s:%(lineno)d] - %(message)s"
        )

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is None and LOG_FILE:
        log_file = Path(LOG_FILE)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setLevel(getattr(logging, log_level))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
