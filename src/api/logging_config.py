from __future__ import annotations

import sys

from loguru import logger

from .settings import Settings


# PUBLIC_INTERFACE
def setup_logging(settings: Settings) -> None:
    """Route loguru output to stdout at LOG_LEVEL, as JSON lines when LOG_JSON is set."""
    logger.remove()

    if settings.log_json:
        logger.add(
            sys.stdout,
            level=settings.log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
            serialize=True,
        )
    else:
        logger.add(
            sys.stdout,
            level=settings.log_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}:{function}:{line}</cyan> | <level>{message}</level>",
        )

    logger.info(f"Logging configured at {settings.log_level} level")
