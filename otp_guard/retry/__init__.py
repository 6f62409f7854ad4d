"""
Network-Aware Retry
===================
Exponential backoff retry that waits for connectivity and races every
attempt against a timeout.
"""

from .policy import RetryPolicy, RetryResult, default_should_retry
from .executor import RetryExecutor

__all__ = [
    # Policy
    "RetryPolicy",
    "RetryResult",
    "default_should_retry",
    # Executor
    "RetryExecutor",
]
