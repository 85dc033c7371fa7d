"""
Helper utilities
"""
import re
from datetime import datetime, timezone
from typing import Any, Optional

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the store's frame)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def only_digits(value: Any) -> str:
    """Strip everything but digits ("+91 88739-61545" -> "918873961545")"""
    if value is None:
        return ""
    return "".join(ch for ch in str(value) if ch.isdigit())


def is_valid_phone(value: Any) -> bool:
    """Indian mobile number: exactly 10 digits once separators are removed"""
    return len(only_digits(value)) == 10


def is_valid_pincode(value: Any) -> bool:
    """Indian postal code: exactly 6 digits"""
    return len(only_digits(value)) == 6


def number_or_default(value: Any, default: float = 0.0) -> float:
    """Coerce to float; empty, zero and missing values take the default"""
    if not value:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def leading_int(value: Any) -> Optional[int]:
    """Integer prefix of a value ("2.5" -> 2, "3 pcs" -> 3); None when there is none"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (OverflowError, ValueError):
            return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def first_or_default(values: Optional[list], default: Any = None) -> Any:
    """First element of a list, or default when the list is empty or missing"""
    if not values:
        return default
    return values[0]
