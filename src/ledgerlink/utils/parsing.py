"""Parsing and formatting helpers for dates, amounts and file names."""

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

MONTH_ABBREVIATIONS = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)

# Tried in order after ISO 8601
DATE_FORMATS = (
    "%Y-%m-%d",  # 2026-01-30
    "%d-%b-%Y",  # 30-jan-2026
    "%d/%m/%Y",  # 30/01/2026
    "%d %b %Y",  # 30 Jan 2026
    "%d-%m-%Y",  # 30-01-2026
    "%d %B %Y",  # 30 January 2026
)

_AMOUNT_NOISE = re.compile(r"[$€£₹,\s]")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9-]")


def _unquote(text: str) -> str:
    return text.strip().strip('"').strip()


def _parse_iso(text: str) -> date | None:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def parse_date(date_str: str) -> date | None:
    """
    Parse a date string in any format the API or a user is likely to send.

    ISO 8601 dates and datetimes are tried first; datetimes carrying an
    offset (or ``Z``) give their UTC calendar date. DATE_FORMATS are tried
    next, in order. Month names are matched case-insensitively, so
    the API's own ``05-jan-2024`` parses.

    Args:
        date_str: Date string to parse

    Returns:
        date object if successful, None otherwise
    """
    text = _unquote(date_str)
    if not text:
        return None

    parsed = _parse_iso(text)
    if parsed is not None:
        return parsed

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def coerce_date(value: Any) -> date | None:
    """Turn a date, datetime or date string into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date(value)
    return None


def parse_amount(amount_str: str) -> Decimal | None:
    """
    Parse an amount string to Decimal.

    Currency symbols, thousands separators and surrounding quotes are
    ignored. ``(12.50)`` and ``-12.50`` are both negative.

    Returns:
        Decimal if the text is a finite number, None otherwise
    """
    text = _unquote(amount_str or "")

    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]

    text = _AMOUNT_NOISE.sub("", text)
    if text.startswith("-"):
        negative = True
        text = text[1:]
    if not text:
        return None

    try:
        value = Decimal(text)
    except InvalidOperation:
        return None

    if not value.is_finite():
        return None
    return -value if negative else value


def format_date_for_api(value: date | datetime | str | None) -> str | None:
    """
    Format a date as DD-mon-YYYY (05-jan-2024), the API's date format.

    Args:
        value: date/datetime, or a string in any format parse_date accepts

    Returns:
        Formatted string, or None when the value is empty or not a date
    """
    if value is None or value == "":
        return None

    parsed = coerce_date(value)
    if parsed is None:
        return None

    return f"{parsed.day:02d}-{MONTH_ABBREVIATIONS[parsed.month - 1]}-{parsed.year}"


def sanitize_basename(name: str) -> str:
    """Keep only ASCII letters, digits and hyphens."""
    return _UNSAFE_NAME_CHARS.sub("", name)


def split_extension(file_name: str) -> tuple[str, str]:
    """Split at the last dot, keeping the dot with the extension."""
    dot = file_name.rfind(".")
    if dot == -1:
        return file_name, ""
    return file_name[:dot], file_name[dot:]
