"""
OTP Delivery
============
Cooldown cache, offline queue, verification guard and the coordinator
that ties them to the retry engine and the risk assessor.
"""

from .models import (
    OTPChannel,
    DedupeEntry,
    CooldownStatus,
    QueuedOTPRequest,
    DeliveryResult,
    BanStatus,
)
from .provider import OTPProvider
from .cache import OTPDedupeCache
from .offline_queue import OfflineOTPQueue, SendFunction
from .attempt_guard import VerificationAttemptGuard
from .coordinator import OTPDeliveryCoordinator, DEFAULT_SEND_POLICY

__all__ = [
    # Models
    "OTPChannel",
    "DedupeEntry",
    "CooldownStatus",
    "QueuedOTPRequest",
    "DeliveryResult",
    "BanStatus",
    # Provider
    "OTPProvider",
    # Cache
    "OTPDedupeCache",
    # Offline Queue
    "OfflineOTPQueue",
    "SendFunction",
    # Verification Guard
    "VerificationAttemptGuard",
    # Coordinator
    "OTPDeliveryCoordinator",
    "DEFAULT_SEND_POLICY",
]
