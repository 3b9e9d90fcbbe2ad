"""Loguru sink configuration for the sii-extract CLI."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None, level: str = "INFO"):
    """
    Route engine logs to stderr and, optionally, a file.

    The engine logs the chosen format at INFO, per-format detection scores
    and unparseable values at DEBUG, and input truncation at WARNING. Stdout
    is left to the JSON envelope and the rich tables.

    Args:
        verbose: Show DEBUG records (detection scores) on stderr
        log_file: Also write every record, DEBUG and up, to this file
        level: stderr level when not verbose (engine.yaml log_level)
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if verbose else level,
        colorize=True
    )

    if log_file:
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="10 MB"
        )
        logger.debug(f"Logging to file: {log_file}")
