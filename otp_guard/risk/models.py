"""
Risk Models
===========
Assessment result and the table row types driving the heuristics.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RiskAssessment:
    """Pure function output of ``(phone_number, country_code)``."""
    is_valid: bool = True
    is_suspicious: bool = False
    is_disposable: bool = False
    risk_score: int = 0                   # 0-100, higher = riskier
    reason: Optional[str] = None          # Human-readable, first detection wins
    reason_code: Optional[str] = None     # Message catalog key for ``reason``
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "is_suspicious": self.is_suspicious,
            "is_disposable": self.is_disposable,
            "risk_score": self.risk_score,
            "reason": self.reason,
            "reason_code": self.reason_code,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class DisposablePrefix:
    """E.164 prefix known to belong to a virtual/temporary number service."""
    prefix: str
    country: str
    provider: str


@dataclass(frozen=True)
class SuspiciousPattern:
    """Regex applied to the digit-only form of a number."""
    name: str
    pattern: "re.Pattern[str]"


@dataclass(frozen=True)
class CountryRule:
    """National mobile format enforced by the risk check."""
    country: str
    calling_code: str
    pattern: "re.Pattern[str]"
    reason_code: str
