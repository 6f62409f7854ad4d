"""
OTP Guard
=========
Resilient OTP delivery and phone risk assessment.
"""

__version__ = "0.1.0"

# Configuration
from otp_guard.config import OTPGuardConfig

# Logging
from otp_guard.logs import setup_logging, get_logger

# Errors
from otp_guard.errors import (
    ErrorKind,
    OTPGuardError,
    ValidationError,
    TransientNetworkError,
    NoNetworkError,
    AttemptTimeoutError,
    ProviderError,
    ProviderRejectionError,
    OperationCancelled,
    classify_error,
)

# Messages
from otp_guard.messages import localize, user_error_message

# Scheduling
from otp_guard.scheduling import Clock, Scheduler, SystemClock, AsyncioScheduler

# Storage
from otp_guard.storage import (
    DurableStore,
    StoreError,
    InMemoryStore,
    RedisStore,
    KeyedLock,
    export_namespace,
    purge_namespace,
)

# Network
from otp_guard.network import (
    NetworkState,
    TransportType,
    NetworkProbe,
    StaticNetworkProbe,
    HttpReachabilityProbe,
    ConnectivityWatcher,
)

# Retry
from otp_guard.retry import RetryExecutor, RetryPolicy, RetryResult

# Phone
from otp_guard.phone import (
    format_phone_for_provider,
    validate_international_number,
    normalize_phone_key,
    mask_phone,
)

# Risk
from otp_guard.risk import PhoneRiskAssessor, RiskAssessment, get_risk_message

# Metrics
from otp_guard.metrics import DeliveryMetrics, MetricNames

# OTP
from otp_guard.otp import (
    OTPChannel,
    OTPProvider,
    OTPDedupeCache,
    OfflineOTPQueue,
    VerificationAttemptGuard,
    OTPDeliveryCoordinator,
    DeliveryResult,
    CooldownStatus,
    QueuedOTPRequest,
    BanStatus,
)

__all__ = [
    # Configuration
    "OTPGuardConfig",
    # Logging
    "setup_logging",
    "get_logger",
    # Errors
    "ErrorKind",
    "OTPGuardError",
    "ValidationError",
    "TransientNetworkError",
    "NoNetworkError",
    "AttemptTimeoutError",
    "ProviderError",
    "ProviderRejectionError",
    "OperationCancelled",
    "classify_error",
    # Messages
    "localize",
    "user_error_message",
    # Scheduling
    "Clock",
    "Scheduler",
    "SystemClock",
    "AsyncioScheduler",
    # Storage
    "DurableStore",
    "StoreError",
    "InMemoryStore",
    "RedisStore",
    "KeyedLock",
    "export_namespace",
    "purge_namespace",
    # Network
    "NetworkState",
    "TransportType",
    "NetworkProbe",
    "StaticNetworkProbe",
    "HttpReachabilityProbe",
    "ConnectivityWatcher",
    # Retry
    "RetryExecutor",
    "RetryPolicy",
    "RetryResult",
    # Phone
    "format_phone_for_provider",
    "validate_international_number",
    "normalize_phone_key",
    "mask_phone",
    # Risk
    "PhoneRiskAssessor",
    "RiskAssessment",
    "get_risk_message",
    # Metrics
    "DeliveryMetrics",
    "MetricNames",
    # OTP
    "OTPChannel",
    "OTPProvider",
    "OTPDedupeCache",
    "OfflineOTPQueue",
    "VerificationAttemptGuard",
    "OTPDeliveryCoordinator",
    "DeliveryResult",
    "CooldownStatus",
    "QueuedOTPRequest",
    "BanStatus",
]
