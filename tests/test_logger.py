"""
Tests for logging system.
"""

from pathlib import Path

import pytest

from ghsync.config.config import LogConfig
from ghsync.logger.logger import StructuredLogger, create_logger, get_logger


@pytest.fixture
def log_config(tmp_path):
    """Create a test log configuration."""
    return LogConfig(level="DEBUG", file_path=str(tmp_path / "logs" / "test.log"), max_file_size=10, backup_count=3)


def test_structured_logger_creation(log_config):
    logger = StructuredLogger("test", log_config)
    assert logger.name == "test"
    assert logger.logger.name == "ghsync.test"
    assert len(logger.logger.handlers) == 2


def test_console_only_without_file_path():
    logger = StructuredLogger("console", LogConfig(level="INFO"))
    assert len(logger.logger.handlers) == 1


@pytest.mark.parametrize("level", ["debug", "info", "warning", "error"])
def test_logger_messages(log_config, capsys, level):
    logger = StructuredLogger("test", log_config)
    getattr(logger, level)(f"{level} message")
    captured = capsys.readouterr()
    assert f"{level} message" in captured.err or f"{level} message" in captured.out


def test_logger_writes_file_with_thread_name(log_config):
    logger = StructuredLogger("test", log_config)
    logger.info("Test message")

    content = Path(log_config.file_path).read_text(encoding="utf-8")
    assert "Test message" in content
    assert "(MainThread)" in content


def test_logger_respects_level(tmp_path, capsys):
    config = LogConfig(level="WARNING", file_path=str(tmp_path / "warn.log"))
    logger = StructuredLogger("quiet", config)
    logger.info("hidden")
    captured = capsys.readouterr()
    assert "hidden" not in captured.err + captured.out


def test_get_logger_caches(log_config):
    logger1 = get_logger("test_app", log_config)
    logger2 = get_logger("test_app", log_config)
    assert logger1 is logger2


def test_create_logger_replaces(log_config):
    logger1 = create_logger("new_logger", log_config)
    logger2 = create_logger("new_logger", log_config)
    assert logger1 is not logger2
    assert get_logger("new_logger") is logger2


def test_logger_with_format(log_config, capsys):
    logger = StructuredLogger("test", log_config)
    logger.info("Message with %s", "parameter")
    captured = capsys.readouterr()
    assert "Message with parameter" in captured.err or "Message with parameter" in captured.out


def test_logger_exception(log_config, capsys):
    logger = StructuredLogger("test", log_config)
    try:
        raise ValueError("Test error")
    except ValueError:
        logger.exception("An error occurred")
    captured = capsys.readouterr()
    assert "An error occurred" in captured.err or "An error occurred" in captured.out
