"""Loguru sink configuration for the tutor."""

from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Replace the default loguru sink with stderr (and an optional rotating file)."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            rotation="10 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
        )
