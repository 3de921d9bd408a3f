"""
Finnish number handling.

Form input arrives as "2 500,5", "2500.5" or 2500.5 depending on the field
widget; reports must be rendered the way fi-FI Intl formatting renders them
(U+00A0 thousands grouping, decimal comma, U+2212 minus), since the PDF
output is compared against the existing documents character by character.

Rounding follows JavaScript: Math.round is half-up towards +inf and Intl
rounds half away from zero on the shortest decimal representation. Python's
round() is banker's rounding and is never used for report numbers.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any, Optional

NBSP = "\u00a0"
MINUS = "\u2212"

_WHITESPACE = re.compile(r"\s+")
MAX_FRACTION_DIGITS = 20  # Intl maximumFractionDigits upper bound

FI_MONTHS = (
    "tammikuuta", "helmikuuta", "maaliskuuta", "huhtikuuta",
    "toukokuuta", "kesäkuuta", "heinäkuuta", "elokuuta",
    "syyskuuta", "lokakuuta", "marraskuuta", "joulukuuta",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite(value: Any) -> Optional[float]:
    """Float value of a real number, None for non-numbers, NaN, inf and ints beyond float range."""
    if not _is_number(value):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def try_parse_number(value: Any) -> Optional[float]:
    """
    Parse a locale-tolerant number, returning None when it is not one.

    Whitespace is dropped (thousands separators, including NBSP), the first
    comma becomes the decimal point. NaN and infinities are rejected.
    """
    if value is None:
        return None
    if _is_number(value):
        return _finite(value)

    text = _WHITESPACE.sub("", str(value))
    if not text or "_" in text:
        return None
    text = text.replace(",", ".", 1).replace(MINUS, "-")
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_number(value: Any) -> float:
    """Parse a form number; anything unparseable (or missing) is 0."""
    number = try_parse_number(value)
    return 0.0 if number is None else number


def round_half_up(value: float) -> int:
    """Integer rounding with JavaScript Math.round semantics."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = _finite(value)
    if number is None:
        return 0
    return int(math.floor(number + 0.5))


def _clamp_digits(digits: Any) -> int:
    try:
        digits = int(digits)
    except (TypeError, ValueError):
        return 0
    return max(0, min(digits, MAX_FRACTION_DIGITS))


def _format_fi(value: float, min_digits: int, max_digits: int) -> str:
    max_digits = _clamp_digits(max_digits)
    min_digits = min(_clamp_digits(min_digits), max_digits)

    exact = Decimal(repr(float(value)))
    # Enough precision for every integer digit plus the requested fraction
    context = Context(prec=max(exact.adjusted(), 0) + max_digits + 2)
    try:
        quantized = exact.quantize(Decimal(1).scaleb(-max_digits), rounding=ROUND_HALF_UP, context=context)
    except InvalidOperation:
        return "0"

    negative = quantized < 0
    digits = f"{abs(quantized):f}"
    int_part, _, frac_part = digits.partition(".")

    frac_part = frac_part.rstrip("0")
    if len(frac_part) < min_digits:
        frac_part = frac_part.ljust(min_digits, "0")

    text = f"{int(int_part):,}".replace(",", NBSP)
    if frac_part:
        text = f"{text},{frac_part}"
    if negative:
        text = MINUS + text
    return text


def format_number(value: Any, fraction_digits: int = 0) -> str:
    """
    Format a number for display using fi-FI conventions.

    With fraction_digits=0 the locale default applies (up to three decimals,
    trailing zeros dropped); otherwise exactly that many decimals are shown,
    capped at 20. Non-numbers, NaN and infinities render as "0".
    """
    number = _finite(value)
    if number is None:
        return "0"
    if fraction_digits > 0:
        return _format_fi(number, fraction_digits, fraction_digits)
    return _format_fi(number, 0, 3)


def format_compact(value: Any, max_digits: int = 2) -> str:
    """Up to `max_digits` decimals, trailing zeros dropped: 2.50 -> '2,5'."""
    number = _finite(value)
    if number is None:
        return "0"
    return _format_fi(number, 0, max_digits)


def format_currency(value: Any, decimals: int = 0) -> str:
    """EUR amount, e.g. 1234 -> '1 234 €'."""
    number = _finite(value)
    return f"{_format_fi(number or 0, decimals, decimals)}{NBSP}€"


def format_decimal(value: Any, decimals: int = 1) -> str:
    """Fixed-precision decimal, one fraction digit unless told otherwise."""
    number = _finite(value)
    if number is None:
        return "0"
    return _format_fi(number, decimals, decimals)


def format_percentage(value: Any, decimals: int = 1) -> str:
    """Percentage of an already-scaled value: 12.5 -> '12,5 %'."""
    return f"{format_decimal(value, decimals)} %"


def parse_date(value: Any) -> Optional[date]:
    """Accept date/datetime objects, ISO strings and Finnish d.M.yyyy."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    match = re.fullmatch(r"(\d{1,2})\.(\d{1,2})\.(\d{4})", text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def format_date(value: Any, style: str = "short") -> str:
    """
    Format a date as fi-FI.

    Styles: "short" -> 19.10.2026, "long" -> 19. lokakuuta 2026,
    "iso" -> 2026-10-19. Unparseable input is returned as text.
    """
    parsed = parse_date(value)
    if parsed is None:
        return "" if value is None else str(value)

    if style == "iso":
        return parsed.isoformat()
    if style == "long":
        return f"{parsed.day}. {FI_MONTHS[parsed.month - 1]} {parsed.year}"
    return f"{parsed.day}.{parsed.month}.{parsed.year}"
