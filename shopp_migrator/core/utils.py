"""
Utility functions.
"""

import re
import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

AFFIRMATIVE = ("yes", "1", "true", "on")


def str_to_bool(value: Union[bool, str, None]) -> bool:
    """
    Convert Shopp's 'yes'/'on' style flags into a native boolean.

    Booleans are returned untouched; strings are trimmed and lowercased and
    must match one of AFFIRMATIVE exactly. Anything else is False.
    """
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return False
    return value.strip().lower() in AFFIRMATIVE


def sanitize_title(text: str) -> str:
    """Convert an attribute label to a WordPress-style slug ("First Name" -> "first-name")."""
    if not text:
        return ""
    norm = unicodedata.normalize('NFKD', text)
    ascii_text = norm.encode('ascii', 'ignore').decode('ascii').lower()
    slug = re.sub(r'[^\w\s-]', '', ascii_text)
    slug = re.sub(r'[-\s]+', '-', slug)
    return slug.strip('-')


def format_decimal(value: Any) -> Optional[str]:
    """
    Format a database decimal the way WooCommerce stores prices ("20.010000" -> "20.01").

    Values that are not numeric are returned as strings, unchanged.
    """
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return str(value)
    if not number.is_finite():
        return str(value)
    if number == number.to_integral():
        return str(number.quantize(Decimal(1)))
    return format(number.normalize(), 'f')


def is_empty_amount(value: Any) -> bool:
    """True for None, blank strings and anything numerically zero."""
    if value is None:
        return True
    text = str(value).strip()
    if not text:
        return True
    try:
        return Decimal(text) == 0
    except (InvalidOperation, ValueError):
        return False

