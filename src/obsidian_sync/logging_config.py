"""Logging setup: console output plus a size-rotated log file."""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers added by setup_logging, replaced on the next call
_handlers = []


def parse_level(level: str) -> int:
    """Map a level name such as "info" or "DEBUG" to a logging level. Unknown names give INFO."""
    value = logging.getLevelName(level.strip().upper())
    if isinstance(value, int):
        return value
    return logging.INFO


def setup_logging(
    level: str = "info",
    log_file: Optional[Path] = None,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 10,
    console: bool = True,
) -> Optional[Path]:
    """
    Configure the root logger.

    Args:
        level: Level name for the root logger
        log_file: Rotating log file; its directory is created if missing
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files to keep
        console: Whether to also log to stderr

    Returns:
        The log file path, if file logging is enabled
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(parse_level(level))
    while _handlers:
        handler = _handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        _handlers.append(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _handlers.append(file_handler)

    # watchdog logs every inotify event at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    return log_file
