"""
Logging configuration
"""
import sys

from loguru import logger

from kuurier.core.config import get_settings


def setup_logger():
    """Configure loguru with a single console sink at the configured level."""
    settings = get_settings()
    logger.remove()  # Remove default handler

    logger.add(
        sys.stdout,
        colorize=not settings.is_production,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level,
    )

    return logger
