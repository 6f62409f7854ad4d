"""
Risk Tables
===========
Data driving the heuristics. New ranges and patterns are rows here,
never code changes in the assessor.
"""

import re
from typing import Dict, Tuple

from ..phone.patterns import PHONE_PATTERNS
from .models import CountryRule, DisposablePrefix, SuspiciousPattern

DISPOSABLE_PREFIXES: Tuple[DisposablePrefix, ...] = (
    # France
    DisposablePrefix("+3370", "FR", "Online SMS"),
    DisposablePrefix("+3377", "FR", "Virtual Number"),
    DisposablePrefix("+3378", "FR", "Temp SMS"),
    # USA
    DisposablePrefix("+1267", "US", "TextNow"),
    DisposablePrefix("+1332", "US", "Talkatone"),
    DisposablePrefix("+1469", "US", "Google Voice"),
    DisposablePrefix("+1567", "US", "TextFree"),
    # UK
    DisposablePrefix("+44791", "GB", "Virtual UK"),
    DisposablePrefix("+44784", "GB", "Temp UK"),
)

# Every pattern is linear-time: no nested quantifiers.
SUSPICIOUS_PATTERNS: Tuple[SuspiciousPattern, ...] = (
    SuspiciousPattern("repeated_digits", re.compile(r"([0-9])\1{4}")),
    SuspiciousPattern("leading_zeros", re.compile(r"^[0-9]{0,3}0{5}")),
    SuspiciousPattern("ascending_run", re.compile(r"123456")),
    SuspiciousPattern("all_ones", re.compile(r"111111")),
    SuspiciousPattern("all_nines", re.compile(r"999999")),
)


def _rule(country: str, reason_code: str) -> CountryRule:
    pattern = PHONE_PATTERNS[country]
    return CountryRule(country, pattern.calling_code, pattern.pattern, reason_code)


COUNTRY_RULES: Dict[str, CountryRule] = {
    "FR": _rule("FR", "format_fr"),
    "US": _rule("US", "format_nanp"),
    "CA": _rule("CA", "format_nanp"),
    "GB": _rule("GB", "format_gb"),
}
