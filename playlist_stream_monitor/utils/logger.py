"""Logging setup for Playlist Stream Monitor."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import coloredlogs

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(asctime)s %(levelname)-8s %(message)s'

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default")

LEVEL_STYLES = dict(
    coloredlogs.DEFAULT_LEVEL_STYLES,
    debug={'color': 'blue', 'faint': True},
    info={},
)


def _quiet_third_party(level: int = logging.WARNING) -> None:
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(level)


def _rotating_file_handler(log_file: Path, max_size_mb: int, backup_count: int) -> RotatingFileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def setup_logger(
    name: str = "playlist_stream_monitor",
    log_file: Optional[Path] = None,
    level: str = "INFO",
    max_size_mb: int = 10,
    backup_count: int = 5,
    console: bool = True
) -> logging.Logger:
    """Configure the application logger.

    Existing handlers are replaced, so calling this again (e.g. once per CLI
    command) never duplicates output.

    Args:
        name: Logger name
        log_file: Rotating log file (no file logging if None)
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        max_size_mb: Size in MB at which the log file rotates
        backup_count: Rotated files to keep
        console: Also log to stdout with colors

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())
    logger.handlers.clear()

    _quiet_third_party()

    if log_file:
        logger.addHandler(_rotating_file_handler(log_file, max_size_mb, backup_count))

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(coloredlogs.ColoredFormatter(
            fmt=CONSOLE_FORMAT,
            datefmt='%H:%M:%S',
            level_styles=LEVEL_STYLES
        ))
        logger.addHandler(console_handler)

    return logger
