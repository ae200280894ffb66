"""
ec2tester/utils/log_setup.py

Configures the 'ec2tester' logger from a Config's log_level and log_outputs.

Outputs are 'default' or 'stderr' (standard error), 'stdout', or a file path
that is appended to.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, List

LOGGER_NAME = "ec2tester"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


def _handler_for(output: str) -> logging.Handler:
    if output in ("default", "stderr"):
        return logging.StreamHandler(sys.stderr)
    if output == "stdout":
        return logging.StreamHandler(sys.stdout)
    return logging.FileHandler(output, mode="a", encoding="utf-8")


def setup_logging(level: str, outputs: List[str]) -> logging.Logger:
    """
    Replace the handlers of the package logger with one per output.

    Args:
        level (str): debug, info, warn, error, panic or fatal.
        outputs (List[str]): 'default', 'stderr', 'stdout' or file paths.
            Duplicates are ignored.

    Returns:
        logging.Logger: The configured 'ec2tester' logger.

    Raises:
        ValueError: If the level is not recognized.
        OSError: If a log file cannot be opened.
    """
    numeric = LEVELS.get(level.lower())
    if numeric is None:
        raise ValueError(f"unknown log level {level!r}")

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(LOG_FORMAT)
    for output in dict.fromkeys(outputs or ["default"]):
        handler = _handler_for(output)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(numeric)
    logger.propagate = False
    return logger
