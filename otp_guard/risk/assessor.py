"""
Phone Risk Assessor
===================
Additive heuristic scoring for phone numbers submitted for OTP.

Scoring (clamped to 0-100):
- Fewer than 6 digits: invalid, nothing else evaluated
- Disposable range: +50
- Suspicious pattern (repeats, zeros, 123456...): +30
- Run of sequential digits: +20
- Country format mismatch: +10, invalid
- Score of 70 or more: invalid
"""

import re
from typing import Dict, Optional, Sequence

from ..messages import DEFAULT_LOCALE, localize
from .models import CountryRule, DisposablePrefix, RiskAssessment, SuspiciousPattern
from .tables import COUNTRY_RULES, DISPOSABLE_PREFIXES, SUSPICIOUS_PATTERNS

_NON_DIGIT = re.compile(r"[^0-9]")

MIN_DIGITS = 6
DISPOSABLE_SCORE = 50
SUSPICIOUS_SCORE = 30
SEQUENTIAL_SCORE = 20
FORMAT_SCORE = 10
HIGH_RISK_THRESHOLD = 70
MESSAGE_THRESHOLD = 30
SEQUENTIAL_RUN = 4


class PhoneRiskAssessor:
    """
    Stateless risk classifier.

    Same input always yields an equal :class:`RiskAssessment`; no I/O.
    Tables are injectable so new ranges can be tested in isolation.
    """

    def __init__(
        self,
        disposable_prefixes: Sequence[DisposablePrefix] = DISPOSABLE_PREFIXES,
        suspicious_patterns: Sequence[SuspiciousPattern] = SUSPICIOUS_PATTERNS,
        country_rules: Optional[Dict[str, CountryRule]] = None,
        locale: str = DEFAULT_LOCALE,
    ):
        self.disposable_prefixes = tuple(disposable_prefixes)
        self.suspicious_patterns = tuple(suspicious_patterns)
        self.country_rules = COUNTRY_RULES if country_rules is None else country_rules
        self.locale = locale

    def assess(self, phone_number: str, country_code: Optional[str] = None) -> RiskAssessment:
        """
        Score a number.

        Args:
            phone_number: Raw user input, any format
            country_code: ISO country code; unsupported codes skip the format check
        """
        phone_number = phone_number if isinstance(phone_number, str) else ""
        result = RiskAssessment()
        digits = _NON_DIGIT.sub("", phone_number)

        if len(digits) < MIN_DIGITS:
            result.is_valid = False
            self._set_reason(result, "too_short", overwrite=True)
            return result

        provider = self._disposable_provider(phone_number)
        if provider is not None:
            result.is_disposable = True
            result.risk_score += DISPOSABLE_SCORE
            self._set_reason(result, "disposable", provider=provider)
            result.suggestions.append(localize("suggest_personal", self.locale))

        if self._matches_suspicious(digits):
            result.is_suspicious = True
            result.risk_score += SUSPICIOUS_SCORE
            self._set_reason(result, "suspicious")

        if has_sequential_digits(digits):
            result.is_suspicious = True
            result.risk_score += SEQUENTIAL_SCORE
            result.suggestions.append(localize("suggest_sequential", self.locale))

        rule = self.country_rules.get((country_code or "").upper())
        if rule is not None and not self._matches_country(phone_number, digits, rule):
            result.is_valid = False
            result.risk_score += FORMAT_SCORE
            self._set_reason(result, rule.reason_code, overwrite=True)

        result.risk_score = max(0, min(100, result.risk_score))

        if result.risk_score >= HIGH_RISK_THRESHOLD:
            result.is_valid = False
            self._set_reason(result, "high_risk")

        return result

    def get_risk_message(self, assessment: RiskAssessment) -> Optional[str]:
        return get_risk_message(assessment, self.locale)

    def _set_reason(self, result: RiskAssessment, code: str, overwrite: bool = False, **params) -> None:
        if result.reason is not None and not overwrite:
            return
        result.reason = localize(code, self.locale, **params)
        result.reason_code = code

    def _disposable_provider(self, phone_number: str) -> Optional[str]:
        normalized = "".join(phone_number.split())
        for entry in self.disposable_prefixes:
            if normalized.startswith(entry.prefix):
                return entry.provider
        return None

    def _matches_suspicious(self, digits: str) -> bool:
        return any(entry.pattern.search(digits) for entry in self.suspicious_patterns)

    def _matches_country(self, phone_number: str, digits: str, rule: CountryRule) -> bool:
        return bool(rule.pattern.fullmatch(national_digits(phone_number, digits, rule.calling_code)))


def national_digits(phone_number: str, digits: str, calling_code: str) -> str:
    """
    Strip the calling code (``+33``/``0033``) and a trunk ``0`` from a number.
    """
    stripped = phone_number.strip()
    if stripped.startswith("+") and digits.startswith(calling_code):
        digits = digits[len(calling_code):]
    elif digits.startswith("00" + calling_code):
        digits = digits[2 + len(calling_code):]
    if digits.startswith("0"):
        digits = digits[1:]
    return digits


def has_sequential_digits(digits: str, run: int = SEQUENTIAL_RUN) -> bool:
    """True if ``run`` consecutive +1 or -1 steps occur (e.g. 34567)."""
    ascending = 0
    descending = 0
    for prev, curr in zip(digits, digits[1:]):
        delta = ord(curr) - ord(prev)
        ascending = ascending + 1 if delta == 1 else 0
        descending = descending + 1 if delta == -1 else 0
        if ascending >= run or descending >= run:
            return True
    return False


def get_risk_message(assessment: RiskAssessment, locale: str = DEFAULT_LOCALE) -> Optional[str]:
    """
    User-facing warning for a risky number.

    Disposable beats suspicious beats generic high-risk; below a score of
    30 there is nothing to say.
    """
    if assessment.risk_score < MESSAGE_THRESHOLD:
        return None
    if assessment.is_disposable:
        return localize("risk_disposable", locale)
    if assessment.is_suspicious:
        return localize("risk_suspicious", locale)
    if assessment.risk_score >= HIGH_RISK_THRESHOLD:
        return localize("risk_high", locale)
    return None
