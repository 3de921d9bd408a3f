"""
Tests for utility modules: logging configuration.

Run with: pytest tests/test_utils.py -v
"""

import json
import logging

import pytest

from heatsavings.utils import (
    ConsoleFormatter,
    FileFormatter,
    ensure_logging,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="heatsavings.formulas.resolver",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Tests for logging configuration."""

    def test_get_logger(self):
        """Test getting a logger instance."""
        logger = get_logger("test_module")
        assert logger is not None
        assert logger.name == "test_module"

    def test_logger_has_handlers(self, restore_root_logger):
        """Test that logging is set up with handlers."""
        setup_logging("debug")
        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.DEBUG

    def test_file_handler(self, restore_root_logger, temp_dir):
        """Test that a log file gets JSON lines."""
        log_file = temp_dir / "run.log"
        setup_logging("INFO", log_to_file=True, log_file=str(log_file))

        get_logger("heatsavings.test").info("Report ready", extra={"lead_id": "lead-1"})
        for handler in restore_root_logger.handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        data = json.loads(line)
        assert data["message"] == "Report ready"
        assert data["lead_id"] == "lead-1"

    def test_ensure_logging_with_file(self, restore_root_logger, temp_dir, monkeypatch):
        """Test that ensure_logging installs the file handler when given a path."""
        monkeypatch.setattr("heatsavings.utils.logging_config._initialized", False)
        log_file = temp_dir / "cli.log"
        ensure_logging("warning", str(log_file))

        assert len(restore_root_logger.handlers) == 2
        get_logger("heatsavings.test").warning("Formula failed", extra={"formula": "annual-savings"})
        for handler in restore_root_logger.handlers:
            handler.flush()

        data = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert data["level"] == "WARNING"
        assert data["formula"] == "annual-savings"


class TestFormatters:
    """Tests for the console and file formatters."""

    def test_console_appends_context(self):
        formatter = ConsoleFormatter(use_colors=False)
        text = formatter.format(_record("Formula failed", formula="annual-savings"))
        assert "| WARNING  |" in text
        assert text.endswith("Formula failed [formula=annual-savings]")

    def test_console_without_context(self):
        text = ConsoleFormatter(use_colors=False).format(_record("Plain"))
        assert text.endswith("| Plain")

    def test_file_formatter(self):
        data = json.loads(FileFormatter().format(_record("Lookup skipped", shortcode="[lookup:x]", strategy="oil")))
        assert data["level"] == "WARNING"
        assert data["logger"] == "heatsavings.formulas.resolver"
        assert data["shortcode"] == "[lookup:x]"
        assert data["strategy"] == "oil"
        assert "formula" not in data
