"""
Logging configuration for driver review.

Sets up loguru with appropriate levels, formatting and debug categories.
"""

import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger

DEBUG_CATEGORIES = ("general", "driver", "rating", "comment", "sync", "storage")


def _category_filter(categories: frozenset[str]) -> Any:
    """Build a sink filter that drops DEBUG records from disabled categories."""

    def _filter(record: Any) -> bool:
        if record["level"].no > logger.level("DEBUG").no:
            return True
        category = record["extra"].get("category", "general")
        return category == "general" or category in categories

    return _filter


def setup_logging(
    level: str = "INFO",
    debug: bool = False,
    categories: Iterable[str] | None = None,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure loguru logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, enable debug logging and more verbose output
        categories: Debug categories to show (default: all of them)
        log_file: Optional path for a rotating log file (INFO and above)
    """
    # Remove default handler
    logger.remove()

    log_level = "DEBUG" if debug else level
    enabled = frozenset(DEBUG_CATEGORIES if categories is None else categories)

    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <magenta>{extra[category]: <8}</magenta> | <cyan>{name}:{function}:{line}</cyan> - <level>{message}</level>",
        filter=_category_filter(enabled),
    )

    if log_file is not None:
        logger.add(
            str(log_file),
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[category]: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )

    # Records logged through the bare logger still need a category for the format
    logger.configure(extra={"category": "general"})


def get_logger(name: str | None = None, category: str = "general") -> Any:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (defaults to calling module)
        category: Debug category the records belong to

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(logger_name=name, category=category)
    return logger.bind(category=category)
