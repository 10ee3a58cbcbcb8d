import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_FORMAT = "[fetchmd] %(message)s"


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Set up logging configuration for fetchmd.

    Log records go to stderr; stdout is reserved for the Markdown output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging output
        format_string: Optional custom format string for log messages.
            Defaults to the compact ``[fetchmd] message`` form at DEBUG.
        force: If True, reconfigure even if handlers exist

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    if format_string is None:
        format_string = DEBUG_FORMAT if numeric_level <= logging.DEBUG else DEFAULT_FORMAT

    logger = logging.getLogger("fetchmd")
    logger.setLevel(numeric_level)

    # Only clear and reconfigure if forced or no handlers exist
    if force or not logger.handlers:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            logger.addHandler(file_handler)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return logger
