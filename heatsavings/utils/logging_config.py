"""
Heatsavings Logging Configuration.

Provides consistent logging setup across all modules with:
- Structured log format with timestamps
- Optional file handler with one record per line
- Log level configuration via environment variable
- Context-aware logging (lead ID, strategy, formula name)

Library modules only ask for a logger; handlers are installed by the
entry point (the CLI) through ensure_logging().

Usage:
    from heatsavings.utils.logging_config import get_logger

    logger = get_logger(__name__)
    logger.warning("Formula failed", extra={"formula": "annual-savings"})
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


DEFAULT_LOG_LEVEL = os.environ.get("HEATSAVINGS_LOG_LEVEL", "INFO").upper()

LOG_DIR = Path(os.environ.get("HEATSAVINGS_LOG_DIR", "logs"))

CONTEXT_KEYS = ("lead_id", "strategy", "formula", "shortcode")


class ConsoleFormatter(logging.Formatter):
    """Console formatter with level colours and context extras."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors and sys.stderr.isatty()
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        extras = [
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_KEYS
            if hasattr(record, key)
        ]
        if extras:
            formatted = f"{formatted} [{', '.join(extras)}]"

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            return f"{color}{formatted}{self.RESET}"
        return formatted


class FileFormatter(logging.Formatter):
    """JSON-lines formatter for file output."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_KEYS + ("error_type",):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_to_file: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for the entire application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to also log to a file
        log_file: Custom log file path (default: logs/heatsavings_YYYYMMDD.log)
    """
    level = level.upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    root_logger.handlers.clear()

    # stderr keeps stdout clean for --json output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ConsoleFormatter(use_colors=True))
    console_handler.setLevel(getattr(logging, level, logging.INFO))
    root_logger.addHandler(console_handler)

    if log_to_file:
        if log_file is None:
            LOG_DIR.mkdir(exist_ok=True)
            log_path = LOG_DIR / f"heatsavings_{datetime.now().strftime('%Y%m%d')}.log"
        else:
            log_path = Path(log_file)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(FileFormatter())
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


_initialized = False


def ensure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Ensure logging is set up (call once at application start)."""
    global _initialized
    if not _initialized:
        setup_logging(level or DEFAULT_LOG_LEVEL, log_to_file=log_file is not None, log_file=log_file)
        _initialized = True
