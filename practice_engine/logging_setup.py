"""Loguru sink configuration for the practice engine."""
from __future__ import annotations

import sys

from loguru import logger

from practice_engine.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Replace the default loguru handler with the configured sinks."""
    settings = settings or get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
