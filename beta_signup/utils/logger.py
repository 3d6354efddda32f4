"""Logging configuration for the beta signup service."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from beta_signup.utils.environment import is_debug, is_testing

ROOT_LOGGER_NAME = "beta_signup"


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_file: str | None = None,
    log_level: str | None = None,
) -> logging.Logger:
    """Configure and return the application logger.

    Module loggers created with ``logging.getLogger(__name__)`` inside the
    ``beta_signup`` package are children of this logger and share its
    handlers.

    Args:
        name: Logger name
        log_file: Path to log file (default: from LOG_FILE env or logs/app.log)
        log_level: Log level (default: from LOG_LEVEL env or DEBUG for local, INFO when deployed)

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "DEBUG" if is_debug() else "INFO")

    level = getattr(logging, log_level.upper(), logging.INFO)

    log = logging.getLogger(name)
    log.setLevel(level)

    # Prevent duplicate handlers
    if log.handlers:
        return log

    log_format = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(log_format)
    log.addHandler(console_handler)

    # No log files while running the test suite
    if log_file is None and not is_testing():
        log_file = os.getenv("LOG_FILE", "logs/app.log")

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(log_format)
            log.addHandler(file_handler)
        except OSError as e:
            log.warning(f"Failed to create file handler for {log_file}: {e}")

    # Keep records out of the root logger (uvicorn configures its own)
    log.propagate = False

    return log


# Global logger instance
logger = setup_logger()
