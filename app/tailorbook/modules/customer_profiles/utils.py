from __future__ import annotations

import re

# Every customer phone number is assumed to be Indian (see DESIGN.md, open questions).
DEFAULT_COUNTRY_CODE = "91"

_TEN_DIGITS = re.compile(r"\d{10}")


def digits_only(raw: str | None) -> str:
    return re.sub(r"\D", "", raw or "")


def is_valid_local_phone(phone: str) -> bool:
    """A stored customer phone is exactly 10 digits, nothing else."""
    return bool(_TEN_DIGITS.fullmatch(phone or ""))


def normalize_whatsapp_phone(phone: str | None, *, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Turn a stored phone into a messaging destination.

    Algorithm:
    1. Strip every non-digit character.
    2. If the digits already start with the country code, keep them as-is.
    3. Otherwise prepend the country code.

    Examples:
        >>> normalize_whatsapp_phone("9876543210")
        '919876543210'
        >>> normalize_whatsapp_phone("+91 98765-43210")
        '919876543210'
        >>> normalize_whatsapp_phone("(987) 654 3210")
        '919876543210'

    Edge case (documented behavior): a local number that itself begins with
    "91" (e.g. "9123456789") is left unprefixed.
    """
    digits = digits_only(phone)
    if digits.startswith(country_code):
        return digits
    return country_code + digits


def clean_optional_text(value) -> str | None:
    return (str(value) if value is not None else "").strip() or None
