"""
Logging configuration for bibpull.

Logs go to stderr so that results on stdout stay machine readable.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging for bibpull.

    Args:
        verbose: Show DEBUG messages on the console
        quiet: Only show errors on the console
        log_file: Path to log file (DEBUG level); console only if None
        format_string: Custom format string (if None, uses default)

    Returns:
        Configured package logger
    """
    logger = logging.getLogger('bibpull')
    logger.setLevel(logging.DEBUG)  # Capture everything, handlers filter
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    if verbose:
        console_level = logging.DEBUG
    elif quiet:
        console_level = logging.ERROR
    else:
        console_level = logging.WARNING

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")

    return logger
