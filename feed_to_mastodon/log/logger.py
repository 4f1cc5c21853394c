"""Logger configuration."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logger(
    name: str = "feed_to_mastodon",
    log_dir: Optional[str | Path] = None,
    level: int = logging.WARNING,
    file_level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 10
) -> logging.Logger:
    """
    Set up logger with console and optional file handlers.

    Module loggers (``feed_to_mastodon.*``) propagate to this logger, so
    calling this once per CLI invocation configures the whole package.

    Args:
        name: Logger name
        log_dir: Directory for log files, or None for console only
        level: Console logging level
        file_level: File logging level
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    log_format = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(log_format)
    logger.addHandler(console_handler)

    effective_level = level
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        # File handler with rotation
        file_handler = RotatingFileHandler(
            log_dir / "app.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(log_format)
        logger.addHandler(file_handler)
        effective_level = min(level, file_level)

    logger.setLevel(effective_level)
    return logger
