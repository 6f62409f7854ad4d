"""
Phone Utilities
===============
Formatting, normalization and per-country validation of phone numbers.
"""

from .phone_utils import (
    format_phone_for_provider,
    mask_phone,
    normalize_phone_key,
    validate_e164,
    validate_international_number,
)
from .patterns import (
    PHONE_PATTERNS,
    PhonePattern,
    PhoneValidationResult,
    format_phone_for_display,
    validate_national_number,
)

__all__ = [
    # Utils
    "format_phone_for_provider",
    "mask_phone",
    "normalize_phone_key",
    "validate_e164",
    "validate_international_number",
    # Country patterns
    "PHONE_PATTERNS",
    "PhonePattern",
    "PhoneValidationResult",
    "format_phone_for_display",
    "validate_national_number",
]
