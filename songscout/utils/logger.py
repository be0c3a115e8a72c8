"""Logging setup for Song Scout.

The console gets the configured level on stderr, so CLI output on stdout
stays machine-readable. The optional log file always records DEBUG, which
keeps upstream request detail around for after-the-fact troubleshooting
without making the terminal noisy.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from songscout.utils.constants import APP_NAME, LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP and MusicBrainz client libraries log every request at INFO/DEBUG
_CHATTY_LIBRARIES = ("urllib3", "musicbrainzngs")


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(
    log_level: str = "INFO",
    log_file: Path | str | None = None,
    force: bool = False,
) -> logging.Logger:
    """Configure and return the application logger.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR).
        log_file: Rotating log file; None logs to stderr only.
        force: Replace handlers from an earlier call instead of keeping them.

    Returns:
        The ``songscout`` root logger.
    """
    logger = logging.getLogger(APP_NAME)

    if logger.handlers:
        if not force:
            return logger
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    console_level = _level(log_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))

    return logger


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Get a child logger, e.g. ``get_logger("core.ranking")``."""
    base = logging.getLogger(APP_NAME)
    if module_name:
        return base.getChild(module_name)
    return base
