"""Centralized logging configuration for tilth."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from tilth.config.constants import DEFAULT_LOG_FILE, DEFAULT_LOG_LEVEL


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL
    file_enabled: bool = False
    file_path: str = DEFAULT_LOG_FILE
    file_max_bytes: int = 10485760  # 10MB
    file_backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    use_rich_console: bool = True
    # --quiet: the console only shows errors; the log file keeps the configured level
    quiet: bool = False


def setup_logging(config: LogConfig) -> None:
    """
    Configure logging with file rotation and optional Rich console output.

    Console output always goes to stderr; stdout belongs to command output.
    Lock and recovery warnings reach the console unless config.quiet is set.

    Args:
        config: Logging configuration
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    root_logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    if config.file_enabled:
        log_path = Path(config.file_path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if config.use_rich_console:
        from rich.console import Console
        from rich.logging import RichHandler

        console_handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)

    if config.quiet:
        console_handler.setLevel(logging.ERROR)

    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
