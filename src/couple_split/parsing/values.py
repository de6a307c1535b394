"""Normalization of date and amount cells from statement exports."""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Excel serial numbers for 2020-01-01 .. mid 2036
EXCEL_SERIAL_MIN = 43831
EXCEL_SERIAL_MAX = 50000
_EXCEL_EPOCH = date(1899, 12, 30)

_ISO_DATE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
# Day/month order is ambiguous; US month-first is assumed
_US_DATES = (
    re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"),
    re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"),
    re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})"),
)
_CURRENCY_SYMBOLS = re.compile(r"[$€£¥₹₽]")
_SEPARATORS = re.compile(r"[,\s]")


def _excel_serial(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not number.is_integer():
        return None
    serial = int(number)
    return serial if EXCEL_SERIAL_MIN <= serial <= EXCEL_SERIAL_MAX else None


def parse_date(value: Any, today: date | None = None) -> str:
    """
    Normalize a date cell to ISO YYYY-MM-DD.

    Tries, in order: native date objects, Excel serial numbers, YYYY-MM-DD,
    US-style MM/DD/YYYY (also with - or . separators), then dateutil. Falls
    back to today's date when nothing parses.

    Args:
        value: Raw cell value
        today: Fallback date (defaults to date.today())

    Returns:
        ISO formatted date string
    """
    fallback = (today or date.today()).isoformat()

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    serial = _excel_serial(value)
    if serial is not None:
        return (_EXCEL_EPOCH + timedelta(days=serial)).isoformat()

    text = "" if value is None else str(value).strip()
    if not text:
        logger.debug("Empty date value, using fallback date")
        return fallback

    match = _ISO_DATE.search(text)
    if match:
        year, month, day = match.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"

    for pattern in _US_DATES:
        match = pattern.search(text)
        if match:
            month, day, year = match.groups()
            return f"{year}-{month.zfill(2)}-{day.zfill(2)}"

    try:
        return date_parser.parse(text).date().isoformat()
    except (ValueError, OverflowError):
        logger.warning(f"Could not parse date '{text}', using fallback date")
        return fallback


def parse_signed_amount(value: Any) -> float:
    """Parse an amount cell keeping its sign. Unparsable values become 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else 0.0

    text = _SEPARATORS.sub("", _CURRENCY_SYMBOLS.sub("", "" if value is None else str(value)))
    # Accounting negatives: (12.34)
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    try:
        amount = float(text)
    except ValueError:
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def parse_amount(value: Any) -> float:
    """Parse an amount cell as a non-negative value."""
    return abs(parse_signed_amount(value))


def parse_optional_field(value: Any) -> str | None:
    """Strip a cell; empty cells become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
