# viarapida/logging_config.py
"""Centralized logging configuration."""

import sys

from loguru import logger

from viarapida.config import LOG_DIR, LOG_LEVEL

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}:{function}:{line}</>",
        "{message}",
    )
)


def setup_logging(level: str = LOG_LEVEL, log_dir: str = LOG_DIR) -> None:
    logger.remove()  # Drop the default handler so records are not printed twice
    logger.add(sys.stderr, format=log_format, level=level)

    if log_dir:
        # Daily files, kept for a month and zipped on rotation
        logger.add(
            f"{log_dir}/{{time:YYYY-MM-DD}}.log",
            format=log_format,
            level=level,
            rotation="1 day",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )
