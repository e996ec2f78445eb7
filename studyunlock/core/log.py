"""
Logging configuration.

All modules log through loguru's global ``logger``. This only swaps the
default sink for one matching the configured level, plus an optional file.
"""
from __future__ import annotations

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Install stderr (and optionally rotating file) sinks."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
    logger.debug(f"Logging configured (level={level}, file={log_file})")
