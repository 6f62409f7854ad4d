"""
Phone Risk Assessment
=====================
Stateless fraud heuristics for phone numbers: disposable ranges,
suspicious patterns, sequential digits and country format checks.
"""

from .models import RiskAssessment, DisposablePrefix, SuspiciousPattern, CountryRule
from .tables import DISPOSABLE_PREFIXES, SUSPICIOUS_PATTERNS, COUNTRY_RULES
from .assessor import PhoneRiskAssessor, get_risk_message

__all__ = [
    # Models
    "RiskAssessment",
    "DisposablePrefix",
    "SuspiciousPattern",
    "CountryRule",
    # Tables
    "DISPOSABLE_PREFIXES",
    "SUSPICIOUS_PATTERNS",
    "COUNTRY_RULES",
    # Assessor
    "PhoneRiskAssessor",
    "get_risk_message",
]
