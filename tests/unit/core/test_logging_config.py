"""Tests for tilth.core.logging_config."""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

import pytest
from rich.logging import RichHandler

from tilth.core.logging_config import LogConfig, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestLogConfig:
    def test_defaults(self):
        cfg = LogConfig()
        assert cfg.level == "WARNING"
        assert cfg.file_enabled is False
        assert cfg.file_backup_count == 5
        assert cfg.use_rich_console is True
        assert cfg.quiet is False


class TestSetupLogging:
    def test_file_handler_created(self, tmp_path):
        log_file = tmp_path / "logs" / "tilth.log"
        setup_logging(LogConfig(level="debug", file_enabled=True, file_path=str(log_file), use_rich_console=False))

        root = logging.getLogger()
        assert RotatingFileHandler in [type(h) for h in root.handlers]
        assert root.level == logging.DEBUG
        assert log_file.parent.is_dir()

    def test_file_handler_disabled(self):
        setup_logging(LogConfig(use_rich_console=False))
        assert not any(isinstance(h, RotatingFileHandler) for h in logging.getLogger().handlers)

    def test_rich_console_handler_writes_to_stderr(self):
        setup_logging(LogConfig())
        (handler,) = logging.getLogger().handlers
        assert isinstance(handler, RichHandler)
        assert handler.console.stderr

    def test_plain_console_handler(self):
        setup_logging(LogConfig(use_rich_console=False))
        (handler,) = logging.getLogger().handlers
        assert type(handler) is logging.StreamHandler
        assert handler.stream is sys.stderr

    def test_clears_existing_handlers(self):
        root = logging.getLogger()
        root.addHandler(logging.StreamHandler())
        root.addHandler(logging.StreamHandler())

        setup_logging(LogConfig(use_rich_console=False))

        assert len(root.handlers) == 1

    def test_quiet_console_shows_only_errors(self, tmp_path, capsys):
        log_file = tmp_path / "tilth.log"
        setup_logging(
            LogConfig(level="INFO", file_enabled=True, file_path=str(log_file), use_rich_console=False, quiet=True)
        )
        logger = get_logger("tilth.test")
        logger.warning("Removing stale lock")
        logger.error("cannot write domain file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        err = capsys.readouterr().err
        assert "Removing stale lock" not in err
        assert "cannot write domain file" in err
        assert "Removing stale lock" in log_file.read_text()

    def test_nothing_logged_to_stdout(self, capsys):
        setup_logging(LogConfig(level="INFO", use_rich_console=False))
        get_logger("tilth.test").warning("lock held too long")
        captured = capsys.readouterr()
        assert captured.out == ""


class TestGetLogger:
    def test_returns_logger(self):
        logger = get_logger("tilth.expertise.store")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "tilth.expertise.store"
