"""Shared validation utilities"""

import re
from datetime import datetime
from typing import Optional

from .timeutils import age_on, utcnow

# Blocks script tags, inline handlers, SQL comments after a quote or semicolon and SQL statement fragments
INJECTION_PATTERN = re.compile(
    r"(<\s*script|javascript:|\bon\w+\s*=|<\s*iframe|['\";]\s*--|/\*.*?\*/"
    r"|\b(select|insert|delete|drop|union|alter|truncate|update)\b\s+(\*|from|into|table|all|set)\b"
    r"|\b(or|and)\b\s+['\"]?\d+['\"]?\s*=\s*['\"]?\d+)",
    re.IGNORECASE,
)


def validate_whatsapp(number) -> int:
    """
    Validate a Lao WhatsApp number.

    Accepts an int or a string of digits (spaces and dashes are stripped)
    and returns it as an int.

    Raises:
        ValueError: If the number is not exactly 10 digits
    """
    digits = re.sub(r"[\s\-]", "", str(number))
    if not digits.isdigit() or len(digits) != 10:
        raise ValueError("WhatsApp number must be exactly 10 digits")
    return int(digits)


def validate_safe_text(value: Optional[str], field: str = "Text", max_length: int = 1000) -> Optional[str]:
    """
    Validate free text typed by a customer (locations, reasons, reviews).

    Raises:
        ValueError: If the text is too long or contains an injection pattern
    """
    if value is None:
        return value

    value = value.strip()
    if len(value) > max_length:
        raise ValueError(f"{field} must be at most {max_length} characters")
    if INJECTION_PATTERN.search(value):
        raise ValueError(f"{field} contains invalid content")
    return value


def validate_adult_dob(dob: datetime, minimum_age: int = 18) -> datetime:
    """Ensure a date of birth belongs to an adult"""
    if age_on(dob, utcnow()) < minimum_age:
        raise ValueError(f"You must be at least {minimum_age} years old")
    return dob
