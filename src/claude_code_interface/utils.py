"""Utility functions for the Claude Code integration."""

import logging
import os
import secrets
import string
import sys
import time
from typing import Optional

PACKAGE_LOGGER_NAME = "claude_code_interface"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def make_invocation_id() -> str:
    """Generate an invocation ID of the form inv_<epoch ms>_<9 random chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"inv_{int(time.time() * 1000)}_{suffix}"


def _get_log_level() -> int:
    """Get log level from CLAUDE_CODE_LOG_LEVEL environment variable.

    Supports: DEBUG, INFO, WARNING, ERROR (case-insensitive).
    Defaults to INFO if not set or invalid.
    """
    level_str = os.environ.get("CLAUDE_CODE_LOG_LEVEL", "INFO").upper()
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    return level_map.get(level_str, logging.INFO)


def setup_logger(
    log_file: Optional[str] = None,
    detached_mode: bool = False,
) -> logging.Logger:
    """Configure the package logger for console and optional file output.

    The console handler uses CLAUDE_CODE_LOG_LEVEL; the file handler, when
    a log file is given, always captures DEBUG.

    Args:
        log_file: Optional path of a log file to append to
        detached_mode: If True, disable the console handler

    Returns:
        Configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if not detached_mode:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_get_log_level())
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console_handler)

    logger.debug("Logger initialized (detached=%s, file=%s)", detached_mode, log_file)
    return logger
