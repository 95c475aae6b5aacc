"""
Utility functions for console output, paths and Galaxy timestamps
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


# Global symbol variables (set by setup_symbols)
SYMBOL_CHECK = '[OK]'
SYMBOL_ERROR = '[ERROR]'
SYMBOL_WARNING = '[WARNING]'
SYMBOL_INFO = '[INFO]'


def detect_unicode_support(force_ascii=False):
    """
    Detect if the terminal supports Unicode output.

    Args:
        force_ascii: If True, force ASCII mode regardless of terminal support

    Returns:
        True if Unicode is supported, False otherwise
    """
    if force_ascii:
        return False

    if os.environ.get('FORCE_ASCII', '').lower() in ('1', 'true', 'yes'):
        return False

    try:
        encoding = sys.stdout.encoding or ''
        if encoding.lower() in ('utf-8', 'utf8'):
            return True

        '✓'.encode(encoding)
        return True
    except (UnicodeEncodeError, AttributeError, LookupError):
        return False


def setup_symbols(force_ascii=False):
    """
    Set up symbol variables based on Unicode support.

    Args:
        force_ascii: If True, force ASCII mode
    """
    global SYMBOL_CHECK, SYMBOL_ERROR, SYMBOL_WARNING, SYMBOL_INFO

    if detect_unicode_support(force_ascii):
        SYMBOL_CHECK = '✓'
        SYMBOL_ERROR = '✗'
        SYMBOL_WARNING = '⚠'
        SYMBOL_INFO = 'ℹ'
    else:
        SYMBOL_CHECK = '[OK]'
        SYMBOL_ERROR = '[ERROR]'
        SYMBOL_WARNING = '[WARNING]'
        SYMBOL_INFO = '[INFO]'


def ensure_directory(path) -> None:
    """
    Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to create
    """
    Path(path).mkdir(parents=True, exist_ok=True)


def parse_int(value: Any) -> Optional[int]:
    """
    Parse an integer the way Galaxy stores numbers (int, float or numeric string).

    Args:
        value: Raw value

    Returns:
        Integer value, or None if the value is empty or not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    # Leading digits only, "1299801600abc" still yields a timestamp
    sign = ""
    if text[0] in "+-":
        sign, text = text[0], text[1:]
    digits = ""
    for char in text:
        if not char.isdigit():
            break
        digits += char
    if not digits:
        return None
    return int(sign + digits)


def year_from_timestamp(value: Any) -> Optional[int]:
    """
    Return the UTC calendar year of a Unix timestamp in seconds.

    Args:
        value: Raw timestamp (int or numeric string)

    Returns:
        Year, or None if the value cannot be parsed
    """
    timestamp = parse_int(value)
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).year
    except (OverflowError, OSError, ValueError):
        return None


def timestamp_to_iso_date(timestamp: int) -> Optional[str]:
    """
    Format a Unix timestamp in seconds as YYYY-MM-DD (UTC).

    Args:
        timestamp: Unix timestamp in seconds

    Returns:
        ISO date string, or None if out of range
    """
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
    except (OverflowError, OSError, ValueError):
        return None


def year_start_timestamp(year: int) -> int:
    """Unix timestamp of 1 January of ``year`` at 00:00 UTC."""
    return int(datetime(year, 1, 1, tzinfo=timezone.utc).timestamp())
