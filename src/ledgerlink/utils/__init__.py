"""Utility functions for ledgerlink."""

from ledgerlink.utils.parsing import (
    coerce_date,
    format_date_for_api,
    parse_amount,
    parse_date,
    sanitize_basename,
    split_extension,
)

__all__ = [
    "coerce_date",
    "format_date_for_api",
    "parse_amount",
    "parse_date",
    "sanitize_basename",
    "split_extension",
]
