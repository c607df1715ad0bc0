"""Logging setup for the command line entry point."""

import logging
from logging.handlers import RotatingFileHandler

from .config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int | None = None, log_file=None):
    """Log to the console and, if configured, to a rotating file."""
    log_formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)
    handlers = [console_handler]

    # Rotating file handler
    log_file = log_file or config.log_file
    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(log_formatter)
        handlers.append(file_handler)

    if isinstance(level, str):
        level = level.upper()

    logging.basicConfig(
        level=level or config.log_level.upper(),
        handlers=handlers,
        force=True,
    )
