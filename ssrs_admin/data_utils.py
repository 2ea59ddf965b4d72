"""
Data conversion utilities.

Converts the string values of parsed SOAP records into Python types.
"""

from datetime import datetime
from typing import Any, Optional

import dateutil.parser


def convert_to_bool(value: Any) -> bool:
    """
    Convert string boolean value to Python bool.

    Handles various input types including None, empty strings,
    string "true"/"false", and actual bool values.

    Args:
        value: Value to convert (string, bool, or other)

    Returns:
        bool: Converted boolean value (defaults to False for None/empty)
    """
    if value is None or value == "":
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def convert_to_int(value: Any) -> Optional[int]:
    """
    Convert value to integer, handling None and empty strings.

    Returns None for unconvertible values.
    """
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None


def convert_to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert value to Python datetime.

    Report server timestamps carry seven fractional digits
    (e.g. 2024-01-15T10:30:00.1234567-05:00); the extra precision is dropped.

    Args:
        value: Datetime string, datetime object, or None

    Returns:
        datetime or None: Parsed datetime or None if parsing fails
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return dateutil.parser.isoparse(value)
    except (ValueError, TypeError):
        return None


def format_bool(value: bool) -> str:
    """Format a bool the way xsd:boolean expects it."""
    return "true" if value else "false"
