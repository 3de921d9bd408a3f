"""Utility modules."""

from .logging_config import (
    get_logger,
    setup_logging,
    ensure_logging,
    ConsoleFormatter,
    FileFormatter,
)
from .numbers import (
    parse_number,
    try_parse_number,
    round_half_up,
    format_number,
    format_compact,
    format_currency,
    format_decimal,
    format_percentage,
    format_date,
    parse_date,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "ensure_logging",
    "ConsoleFormatter",
    "FileFormatter",
    # Numbers
    "parse_number",
    "try_parse_number",
    "round_half_up",
    "format_number",
    "format_compact",
    "format_currency",
    "format_decimal",
    "format_percentage",
    "format_date",
    "parse_date",
]
