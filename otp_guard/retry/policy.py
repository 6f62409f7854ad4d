"""
Retry Policy
============
Per-call retry parameters and the default retryability classifier.
"""

from dataclasses import dataclass, replace
from typing import Callable, Generic, Optional, TypeVar

from ..errors import ErrorKind, classify_error

T = TypeVar("T")

_RETRYABLE_KINDS = frozenset({
    ErrorKind.TRANSIENT_NETWORK,
    ErrorKind.RATE_LIMITED,
    ErrorKind.UNKNOWN,
})


def default_should_retry(error: BaseException) -> bool:
    """
    Decide whether a failure is worth another attempt.

    Retryable: network/fetch/timeout/connection failures, 5xx, 429.
    Not retryable: other 4xx, validation failures, provider rejections.
    Anything unrecognised is retried.
    """
    return classify_error(error) in _RETRYABLE_KINDS


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry parameters. Delays and timeout are in seconds."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    timeout: float = 30.0
    should_retry: Callable[[BaseException], bool] = default_should_retry

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def next_delay(self, delay: float) -> float:
        """Delay after ``delay``; a factor of 1 or less keeps it constant."""
        if self.backoff_factor <= 1:
            return delay
        return min(delay * self.backoff_factor, self.max_delay)

    def with_overrides(self, **changes) -> "RetryPolicy":
        return replace(self, **changes)


@dataclass
class RetryResult(Generic[T]):
    """Outcome of :meth:`RetryExecutor.try_execute`."""
    success: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None
