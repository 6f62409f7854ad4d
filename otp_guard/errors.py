"""
OTP Error Taxonomy
==================
Exception classes and the classifier that sorts arbitrary failures into
validation, transient, provider-rejection and unknown kinds.
"""

import asyncio
from enum import Enum
from typing import Any, Optional

import httpx

_NETWORK_VOCABULARY = ("network", "fetch", "timeout", "timed out", "connection")
_VALIDATION_VOCABULARY = ("invalid", "validation", "format")
_REJECTION_VOCABULARY = ("blocked", "spam")


class ErrorKind(str, Enum):
    """Failure categories surfaced at every public boundary."""
    VALIDATION = "validation"
    TRANSIENT_NETWORK = "transient_network"
    PROVIDER_REJECTION = "provider_rejection"
    RATE_LIMITED = "rate_limited"
    CACHE_DEGRADATION = "cache_degradation"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class OTPGuardError(Exception):
    """Base exception for otp_guard failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(OTPGuardError):
    """Malformed number, country format mismatch or high risk score."""

    def __init__(self, message: str, reason_code: Optional[str] = None):
        super().__init__(message)
        self.reason_code = reason_code


class TransientNetworkError(OTPGuardError):
    """Retryable failure: connectivity, timeouts, 5xx, 429."""


class NoNetworkError(TransientNetworkError):
    """Raised when connectivity did not come back within the wait window."""

    def __init__(self, message: str = "No network connection available"):
        super().__init__(message)


class AttemptTimeoutError(TransientNetworkError, TimeoutError):
    """Raised when a single attempt outlives the policy timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Request timeout after {timeout:.1f}s")


class ProviderError(OTPGuardError):
    """Failure reported by the OTP provider, with its HTTP status if any."""


class ProviderRejectionError(ProviderError):
    """Non-retryable rejection: 4xx other than 429, spam or block."""


class OperationCancelled(OTPGuardError):
    """Raised when a caller cancelled a send before the next attempt."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


def extract_status(error: BaseException) -> Optional[int]:
    """Read an HTTP status from ``status``, ``status_code`` or ``response``."""
    for attr in ("status", "status_code"):
        value: Any = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def _message_of(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if not isinstance(message, str):
        message = str(error)
    return message.lower()


def is_network_failure(error: BaseException) -> bool:
    if isinstance(error, (TransientNetworkError, httpx.TransportError, ConnectionError)):
        return True
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return True
    message = _message_of(error)
    return any(word in message for word in _NETWORK_VOCABULARY)


def classify_error(error: BaseException) -> ErrorKind:
    """Sort an exception into an :class:`ErrorKind`."""
    if isinstance(error, OperationCancelled):
        return ErrorKind.CANCELLED
    if isinstance(error, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(error, ProviderRejectionError):
        return ErrorKind.PROVIDER_REJECTION

    status = extract_status(error)
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status is not None and 500 <= status < 600:
        return ErrorKind.TRANSIENT_NETWORK
    if is_network_failure(error):
        return ErrorKind.TRANSIENT_NETWORK
    if status is not None and 400 <= status < 500:
        return ErrorKind.PROVIDER_REJECTION

    message = _message_of(error)
    if any(word in message for word in _VALIDATION_VOCABULARY):
        return ErrorKind.VALIDATION
    if any(word in message for word in _REJECTION_VOCABULARY):
        return ErrorKind.PROVIDER_REJECTION
    if "rate limit" in message:
        return ErrorKind.RATE_LIMITED
    return ErrorKind.UNKNOWN
