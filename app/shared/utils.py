"""Shared utility functions."""

from __future__ import annotations

import re
import secrets
from datetime import date, datetime, timezone

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_NON_DIGITS = re.compile(r"\D")


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def today_date_string() -> str:
    """Return server local date as sortable YYYY-MM-DD."""
    return date.today().isoformat()


def to_base36(value: int) -> str:
    """Encode non-negative integer in lower-case base36."""
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    """Return random base36 string of given length."""
    return "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(length))


def normalize_phone_number(phone: str) -> str | None:
    """Normalize phone number towards E.164, assuming UK for local formats.

    Returns None when the input cannot be interpreted as a phone number.
    """
    has_plus = phone.strip().startswith("+")
    digits = _NON_DIGITS.sub("", phone)
    if not digits:
        return None

    if has_plus:
        return f"+{digits}"
    if digits.startswith("44") and len(digits) == 12:
        return f"+{digits}"
    if digits.startswith("0") and len(digits) == 11:
        return f"+44{digits[1:]}"
    if 10 <= len(digits) <= 15:
        return digits
    return None
