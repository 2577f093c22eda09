"""Centralized logging configuration for the golf league backend."""
from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

ROOT_LOGGER = "golf_league"


def setup_logging(
    log_dir: Path | None = None,
    level: int = logging.INFO,
    log_to_file: bool = False,
    log_to_console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_dir: Directory for log files (default: ./logs)
        level: Logging level (default: INFO)
        log_to_file: Whether to log to a timestamped file
        log_to_console: Whether to log to stdout

    Returns:
        The configured 'golf_league' logger. Module loggers obtained with
        get_logger(__name__) propagate to it.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers = []

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    simple_formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")

    if log_to_file:
        if log_dir is None:
            log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)
        log_file = log_dir / f"golf_league_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger; unconfigured loggers fall back to logging defaults."""
    return logging.getLogger(name)
