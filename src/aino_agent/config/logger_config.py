"""Logger configuration for the Aino.io agent."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger


def _env_log_file() -> Optional[Path]:
    if log_file := os.getenv("AINO_LOG_FILE"):
        return Path(log_file)
    return None


@dataclass
class LogSettings:
    """Logging settings, overridable with ``AINO_LOG_*`` environment variables."""

    level: str = field(default_factory=lambda: os.getenv("AINO_LOG_LEVEL", "INFO"))
    to_console: bool = True
    log_file: Optional[Path] = field(default_factory=_env_log_file)
    rotation: str = "10 MB"
    retention: str = "7 days"


def setup_logging(settings: Optional[LogSettings] = None) -> None:
    """Configure loguru logger for console and optional file output.

    Sets up:
    - Console output on stderr with colored output
    - File output with rotation, retention and compression if a log file is set
    """
    settings = settings or LogSettings()

    # Remove default loguru handler
    logger.remove()

    if settings.to_console:
        logger.add(
            sink=sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            level=settings.level,
            colorize=True,
        )

    if settings.log_file:
        logger.add(
            sink=str(settings.log_file),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level=settings.level,
            rotation=settings.rotation,
            retention=settings.retention,
            compression="gz",  # Compress rotated logs
            enqueue=True,  # Thread-safe logging
        )

        logger.info(f"File logging enabled: {settings.log_file}")

    logger.debug(f"Log level: {settings.level}")
