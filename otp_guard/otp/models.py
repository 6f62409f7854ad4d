"""
OTP Models
==========
Persisted records and the result types returned at public boundaries.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import ErrorKind


class OTPChannel(str, Enum):
    """OTP delivery channels."""
    SMS = "sms"
    WHATSAPP = "whatsapp"


@dataclass
class DedupeEntry:
    """Last successful send for one phone key."""
    phone_key: str
    sent_at: float
    expires_at: float
    retry_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phone_key": self.phone_key,
            "sent_at": self.sent_at,
            "expires_at": self.expires_at,
            "retry_count": self.retry_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DedupeEntry":
        return cls(
            phone_key=str(data["phone_key"]),
            sent_at=float(data["sent_at"]),
            expires_at=float(data["expires_at"]),
            retry_count=int(data.get("retry_count", 0)),
        )


@dataclass(frozen=True)
class CooldownStatus:
    """Answer of :meth:`OTPDedupeCache.check_recent`."""
    has_recent: bool
    can_resend: bool
    time_remaining_seconds: int

    @classmethod
    def none(cls) -> "CooldownStatus":
        return cls(has_recent=False, can_resend=True, time_remaining_seconds=0)


@dataclass
class QueuedOTPRequest:
    """OTP request waiting for connectivity."""
    phone_key: str
    enqueued_at: float
    retry_count: int = 0
    metadata: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phone_key": self.phone_key,
            "enqueued_at": self.enqueued_at,
            "retry_count": self.retry_count,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueuedOTPRequest":
        return cls(
            id=str(data["id"]),
            phone_key=str(data["phone_key"]),
            enqueued_at=float(data["enqueued_at"]),
            retry_count=int(data.get("retry_count", 0)),
            metadata=data.get("metadata"),
        )


@dataclass
class DeliveryResult:
    """
    Outcome of ``send_otp``.

    ``cached`` marks a success-shaped answer for a number that already has
    a code in flight; ``error`` is then the "already sent" notice.
    """
    success: bool
    error: Optional[str] = None
    cached: bool = False
    error_kind: Optional[ErrorKind] = None
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.cached:
            data["cached"] = True
        if self.error_kind is not None:
            data["error_kind"] = self.error_kind.value
        return data


@dataclass
class BanStatus:
    """Verification lockout state for a phone number."""
    is_banned: bool
    banned_until: Optional[float] = None
    reason: Optional[str] = None
    phone_key: Optional[str] = None
    time_remaining_seconds: int = 0
