"""
Country Phone Patterns
======================
National mobile number rules for the countries the app supports.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional

_NON_DIGIT = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class PhonePattern:
    """Mobile numbering rule for one country."""
    country_code: str
    calling_code: str
    pattern: "re.Pattern[str]"
    min_length: int
    max_length: int
    example_format: str


@dataclass
class PhoneValidationResult:
    is_valid: bool
    error: Optional[str] = None
    formatted_number: Optional[str] = None
    clean_number: Optional[str] = None


def _p(country: str, calling: str, pattern: str, min_len: int, max_len: int, example: str) -> PhonePattern:
    return PhonePattern(country, calling, re.compile(pattern), min_len, max_len, example)


PHONE_PATTERNS: Dict[str, PhonePattern] = {
    # North America (NANP)
    "US": _p("US", "1", r"[2-9][0-9]{2}[2-9][0-9]{6}", 10, 10, "(201) 555-0123"),
    "CA": _p("CA", "1", r"[2-9][0-9]{2}[2-9][0-9]{6}", 10, 10, "(416) 555-0123"),
    # Europe
    "FR": _p("FR", "33", r"[67][0-9]{8}", 9, 9, "6 12 34 56 78"),
    "GB": _p("GB", "44", r"7[0-9]{9}", 10, 10, "7400 123456"),
    "DE": _p("DE", "49", r"1[5-7][0-9]{8,9}", 10, 11, "151 12345678"),
    "ES": _p("ES", "34", r"[67][0-9]{8}", 9, 9, "612 34 56 78"),
    "IT": _p("IT", "39", r"3[0-9]{8,9}", 9, 10, "312 345 6789"),
    "NL": _p("NL", "31", r"6[0-9]{8}", 9, 9, "6 12345678"),
    "CH": _p("CH", "41", r"7[6-9][0-9]{7}", 9, 9, "79 123 45 67"),
    # Americas
    "BR": _p("BR", "55", r"[0-9]{2}9[0-9]{8}", 11, 11, "(11) 98765-4321"),
    "MX": _p("MX", "52", r"[0-9]{10}", 10, 10, "55 1234 5678"),
    # Asia
    "JP": _p("JP", "81", r"[7-9]0[0-9]{8}", 10, 10, "90-1234-5678"),
    "CN": _p("CN", "86", r"1[3-9][0-9]{9}", 11, 11, "138 0000 0000"),
    "IN": _p("IN", "91", r"[6-9][0-9]{9}", 10, 10, "98765 43210"),
    # Oceania
    "AU": _p("AU", "61", r"4[0-9]{8}", 9, 9, "412 345 678"),
}


def validate_national_number(phone: str, country_code: str) -> PhoneValidationResult:
    """
    Validate a number typed without its calling code.

    Args:
        phone: National number, separators allowed, leading 0 tolerated
        country_code: ISO country code (e.g. "FR", "US")
    """
    if not phone or not isinstance(phone, str):
        return PhoneValidationResult(False, "Phone number is required")

    pattern = PHONE_PATTERNS.get(country_code)
    if pattern is None:
        return PhoneValidationResult(
            False, f"Validation not available for country code: {country_code}"
        )

    clean = _NON_DIGIT.sub("", phone)
    if not clean:
        return PhoneValidationResult(False, "Phone number contains no digits")

    if clean.startswith("0"):
        clean = clean[1:]

    if len(clean) < pattern.min_length:
        return PhoneValidationResult(
            False,
            f"Phone number too short. Expected {pattern.min_length} digits, got {len(clean)}",
        )
    if len(clean) > pattern.max_length:
        return PhoneValidationResult(
            False,
            f"Phone number too long. Expected max {pattern.max_length} digits, got {len(clean)}",
        )
    if not pattern.pattern.fullmatch(clean):
        return PhoneValidationResult(
            False, f"Invalid phone number format. Example: {pattern.example_format}"
        )

    return PhoneValidationResult(
        True,
        formatted_number=f"+{pattern.calling_code}{clean}",
        clean_number=clean,
    )


def format_phone_for_display(phone: str, country_code: str) -> str:
    clean = _NON_DIGIT.sub("", phone or "")
    if clean.startswith("0"):
        clean = clean[1:]

    if country_code in ("US", "CA") and len(clean) == 10:
        return f"({clean[:3]}) {clean[3:6]}-{clean[6:]}"
    if country_code == "FR" and len(clean) == 9:
        return f"{clean[0]} {clean[1:3]} {clean[3:5]} {clean[5:7]} {clean[7:9]}"
    if country_code == "GB" and len(clean) == 10:
        return f"{clean[:4]} {clean[4:]}"
    if country_code == "BR" and len(clean) == 11:
        return f"({clean[:2]}) {clean[2:7]}-{clean[7:]}"
    if country_code in ("US", "CA", "FR", "GB", "BR"):
        return clean
    return " ".join(clean[i:i + 4] for i in range(0, len(clean), 4))
