"""
Tests for logging configuration module.
"""

import logging

import pytest

from envsetup.common import vlog
from envsetup.logging_config import LOGGER_NAME, ColoredFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logging.getLogger(LOGGER_NAME).handlers.clear()


def _console_handlers(logger):
    return [
        h for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


class TestSetupLogging:
    """Test logging setup and configuration."""

    def test_setup_logging_default(self):
        """Test default logging setup."""
        logger = setup_logging()
        assert logger.name == "envsetup"
        assert logger.level == logging.INFO
        assert len(_console_handlers(logger)) == 1

    def test_setup_logging_verbose(self):
        """Test verbose logging enables DEBUG level."""
        assert setup_logging(verbose=True).level == logging.DEBUG

    def test_setup_logging_quiet(self):
        """Test quiet mode suppresses console output."""
        logger = setup_logging(quiet=True)
        assert logger.level == logging.WARNING
        assert _console_handlers(logger) == []

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging to file captures DEBUG records."""
        log_file = tmp_path / "logs" / "envsetup.log"
        logger = setup_logging(log_file=str(log_file))
        logger.debug("probe detail")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "probe detail" in log_file.read_text()

    def test_repeated_setup_does_not_duplicate_handlers(self):
        """Test that calling setup twice replaces handlers."""
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_get_logger(self):
        """Test get_logger returns the configured logger."""
        configured = setup_logging()
        assert get_logger() is configured


class TestColoredFormatter:
    """Test colored output formatting."""

    def _record(self, level=logging.WARNING):
        return logging.LogRecord("envsetup", level, __file__, 1, "port busy", None, None)

    def test_plain(self):
        """Test formatting without colors."""
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=False)
        assert formatter.format(self._record()) == "WARNING port busy"

    def test_colored(self):
        """Test formatting with colors."""
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=True)
        output = formatter.format(self._record(logging.ERROR))
        assert "\033[31m" in output
        assert output.endswith("port busy")


class TestVlog:
    """Test verbose logging helper."""

    def test_vlog_silent_by_default(self, caplog, monkeypatch):
        """Test vlog emits nothing without verbose."""
        monkeypatch.delenv("ENVSETUP_DEBUG", raising=False)
        setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            vlog("hidden")
        assert "hidden" not in caplog.text

    def test_vlog_verbose(self, caplog):
        """Test vlog logs when verbose."""
        setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            vlog("shown", verbose=True)
        assert "shown" in caplog.text

    def test_vlog_debug_env(self, caplog, monkeypatch):
        """Test ENVSETUP_DEBUG turns vlog on."""
        monkeypatch.setenv("ENVSETUP_DEBUG", "1")
        setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            vlog("from env")
        assert "from env" in caplog.text
