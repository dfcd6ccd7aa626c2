"""Logging initialization utilities using loguru."""

from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger

DEFAULT_LOG_DIR = Path.home() / ".photo-tagger" / "logs"


def init_logging(log_dir: str | None = None, console_level: str | None = None) -> None:
    """Initialize rotating file logging under the given directory.

    Messages at or above `console_level`, when given, are echoed to stderr.
    """
    log_path = Path(log_dir).expanduser() if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "app_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level="INFO",
    )
    if console_level:
        logger.add(sys.stderr, level=console_level, format="{level}: {message}")


def get_log_directory(settings: object | None = None) -> str:
    """Get the main log directory path."""
    if settings is not None:
        configured = settings.get("logging.dir")
        if configured:
            return str(Path(configured).expanduser())
    return str(DEFAULT_LOG_DIR)
