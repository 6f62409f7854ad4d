"""
Phone Utilities
===============
Functions for phone number normalization and international validation.
"""

import re
from typing import Optional, Tuple

_NON_DIGIT = re.compile(r"[^0-9]")
_NON_DIGIT_OR_PLUS = re.compile(r"[^0-9+]")
_E164 = re.compile(r"\+[1-9][0-9]{1,14}")


def validate_e164(phone: str) -> bool:
    """
    Validate E.164 phone number format.

    Args:
        phone: Phone number

    Returns:
        True if valid E.164 format
    """
    return bool(_E164.fullmatch(phone or ""))


def format_phone_for_provider(phone: str, calling_code: str) -> str:
    """
    Format a user-typed number for the OTP provider.

    Keeps only digits and ``+``. Numbers without a leading ``+`` lose their
    leading zeros and get ``+<calling_code>`` prepended.

    Example:
        format_phone_for_provider("06 12 34 56 78", "33") == "+33612345678"
    """
    cleaned = _NON_DIGIT_OR_PLUS.sub("", phone or "")
    if cleaned.startswith("+"):
        return cleaned
    cleaned = cleaned.lstrip("0")
    return f"+{calling_code.lstrip('+')}{cleaned}"


def validate_international_number(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Check that a number is in international format.

    Returns:
        Tuple of (is_valid, error)
    """
    if not phone or not phone.startswith("+"):
        return False, "Number must start with +"

    digits = _NON_DIGIT.sub("", phone)
    if len(digits) < 10:
        return False, "Number too short"
    if len(digits) > 15:
        return False, "Number too long"
    return True, None


def normalize_phone_key(phone: str, calling_code: Optional[str] = None) -> str:
    """
    Key under which a number is deduplicated and queued.

    Whitespace and separators are dropped; a leading ``+`` is kept. With a
    ``calling_code``, a national number is first expanded to international
    format so "06 12 34 56 78" and "+33612345678" share one key.
    """
    phone = (phone or "").strip()
    if calling_code and phone and not phone.startswith("+"):
        phone = format_phone_for_provider(phone, calling_code)
    digits = _NON_DIGIT.sub("", phone)
    return f"+{digits}" if phone.startswith("+") else digits


def mask_phone(phone: str) -> str:
    """Mask a number for logging."""
    if not phone:
        return ""
    return phone[:6] + "****"
