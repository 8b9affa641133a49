"""
Structured logging configuration using loguru.

Development logs everything at DEBUG to stdout. Other environments default
to INFO; ``LOG_LEVEL`` overrides either. Production additionally writes
JSON lines to a rotating file for log shipping.
"""
import sys
from loguru import logger
from partyfinder.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

level = settings.LOG_LEVEL or ("DEBUG" if settings.ENVIRONMENT == "development" else "INFO")

logger.remove()
logger.add(sys.stdout, format=LOG_FORMAT, level=level, colorize=True)

if settings.ENVIRONMENT == "production":
    logger.add(
        "logs/partyfinder.jsonl",
        rotation="500 MB",
        retention="10 days",
        compression="zip",
        serialize=True,
        level=level,
    )

__all__ = ["logger"]
