"""
Input validators and normalizers - framework-agnostic, pure functions.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

import validators as _validators

TRANSPORT_TYPES = ("Bus", "Train", "Metro", "SharedCab", "Car", "Bike", "Other")
# Types an agency can publish a scheduled route for
ROUTE_TRANSPORT_TYPES = ("Bus", "Train", "Metro", "SharedCab", "Other")

_NON_DIGITS = re.compile(r"\D")


def normalize_email(email: str) -> str:
    """Lower-case and strip *email*; the canonical form used for storage and lookup."""
    return email.strip().lower()


def normalize_handle(handle: str) -> str:
    """Case-normalized handle key used for uniqueness and lookup."""
    return handle.strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    return bool(_validators.email(email.strip()))


def validate_password(
    password: str, min_length: int = 8, max_length: int = 128
) -> tuple[bool, list[str]]:
    """
    Validate a password against the length policy.

    Returns:
        (is_valid, missing_requirements)
    """
    if not password:
        return False, ["Password is required"]

    missing: list[str] = []
    if len(password) < min_length:
        missing.append(f"At least {min_length} characters")
    if len(password) > max_length:
        missing.append(f"Maximum {max_length} characters")
    return not missing, missing


def normalize_phone(phone: object) -> Optional[int]:
    """Parse a phone number given as int or free-form string.

    Returns the digits as an int when at least 10 digits are present,
    otherwise None.
    """
    if isinstance(phone, bool):
        return None
    if isinstance(phone, int):
        digits = str(phone)
    elif isinstance(phone, str):
        digits = _NON_DIGITS.sub("", phone)
    else:
        return None
    if len(digits) < 10:
        return None
    return int(digits)


def invalid_transport_types(values: Iterable[str]) -> list[str]:
    """Return the entries of *values* that are not known transport types."""
    return [v for v in values if v not in TRANSPORT_TYPES]
