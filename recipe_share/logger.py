"""
Logging setup for the recipe-share API.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from .config import get_config

ROOT_LOGGER = "recipe_share"


def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up application logging on stdout and, if configured, a rotating file.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Uses config if not provided.
        log_file: Log file path. Uses config if not provided; empty disables file output.

    Returns:
        Configured logger instance
    """
    config = get_config()
    log_level = (log_level or config.log_level).upper()
    log_file = log_file if log_file is not None else config.log_file

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, log_level))
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info("Logging initialized - Level: %s, File: %s", log_level, log_file or "-")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child of the application logger (usually called with __name__)"""
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
