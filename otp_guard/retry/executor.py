"""
Retry Executor
==============
Runs an async operation with network awareness, per-attempt timeouts and
exponential backoff.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from ..errors import AttemptTimeoutError, NoNetworkError, OperationCancelled
from ..network import NetworkProbe
from ..scheduling import AsyncioScheduler, Clock, Scheduler, SystemClock
from .policy import RetryPolicy, RetryResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryCallback = Callable[[int, BaseException], None]


class RetryExecutor:
    """
    Network-aware retry engine.

    Example:
        executor = RetryExecutor(probe)
        result = await executor.execute(
            lambda: provider.send(phone, "sms", True, {}),
            RetryPolicy(max_retries=2),
        )

    Each attempt first checks connectivity (waiting up to
    ``network_wait_timeout`` for it to return), then races the operation
    against ``policy.timeout``. The losing operation is cancelled.
    """

    def __init__(
        self,
        probe: NetworkProbe,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Clock] = None,
        network_wait_timeout: float = 10.0,
        network_poll_interval: float = 1.0,
    ):
        self.probe = probe
        self.scheduler = scheduler or AsyncioScheduler()
        self.clock = clock or SystemClock()
        self.network_wait_timeout = network_wait_timeout
        self.network_poll_interval = network_poll_interval

    async def wait_for_network(self, timeout: Optional[float] = None) -> bool:
        """
        Poll the probe until the device is online.

        Returns:
            True if connectivity came back within ``timeout`` seconds
        """
        timeout = self.network_wait_timeout if timeout is None else timeout
        started = self.clock.now()

        while True:
            state = await self.probe.current()
            if state.is_online:
                return True

            remaining = timeout - (self.clock.now() - started)
            if remaining <= 0:
                return False
            await self.scheduler.sleep(min(self.network_poll_interval, remaining))

    async def run_when_connected(self, operation: Operation, timeout: float = 30.0) -> T:
        """
        Run a single attempt, failing fast when offline.

        Raises:
            NoNetworkError: If the device is not connected
            AttemptTimeoutError: If the operation outlives ``timeout``
        """
        state = await self.probe.current()
        if not state.connected:
            raise NoNetworkError("No network connection")
        return await self._race(operation, timeout)

    async def execute(
        self,
        operation: Operation,
        policy: Optional[RetryPolicy] = None,
        on_retry: Optional[RetryCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> T:
        """
        Execute ``operation`` with retries.

        Args:
            operation: Zero-argument callable returning an awaitable
            policy: Retry parameters (defaults to ``RetryPolicy()``)
            on_retry: Called with ``(next_attempt_number, error)`` before each backoff
            cancel_event: When set, stops the loop before the next attempt

        Returns:
            Result of the first successful attempt

        Raises:
            The last error once retries are exhausted, the first
            non-retryable error, or OperationCancelled.
        """
        result = await self.try_execute(operation, policy, on_retry, cancel_event)
        if result.success:
            return result.value
        raise result.error

    async def try_execute(
        self,
        operation: Operation,
        policy: Optional[RetryPolicy] = None,
        on_retry: Optional[RetryCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RetryResult:
        """Like :meth:`execute` but reports failure as a RetryResult."""
        policy = policy or RetryPolicy()
        delay = min(policy.initial_delay, policy.max_delay)
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(policy.max_attempts):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Retry loop cancelled", attempts=attempts)
                return RetryResult(success=False, attempts=attempts, error=OperationCancelled())

            attempts += 1
            try:
                await self._ensure_network()
                value = await self._race(operation, policy.timeout)
                return RetryResult(success=True, attempts=attempts, value=value)
            except Exception as e:
                last_error = e
                logger.warning(
                    "Attempt failed",
                    attempt=attempts,
                    max_attempts=policy.max_attempts,
                    error_type=type(e).__name__,
                    error=str(e),
                )

            if not policy.should_retry(last_error):
                logger.info("Non-retryable error, giving up", attempts=attempts)
                return RetryResult(success=False, attempts=attempts, error=last_error)

            if attempt == policy.max_retries:
                break

            if on_retry is not None:
                on_retry(attempt + 1, last_error)

            logger.info("Retrying after failure", attempt=attempts, delay=delay)
            if not await self._backoff(delay, cancel_event):
                return RetryResult(success=False, attempts=attempts, error=OperationCancelled())
            delay = policy.next_delay(delay)

        logger.error("Retry exhausted", attempts=attempts, error=str(last_error))
        return RetryResult(success=False, attempts=attempts, error=last_error)

    async def _ensure_network(self) -> None:
        state = await self.probe.current()
        if state.connected:
            return
        logger.info("Waiting for network", timeout=self.network_wait_timeout)
        if not await self.wait_for_network(self.network_wait_timeout):
            raise NoNetworkError()

    async def _race(self, operation: Operation, timeout: float) -> T:
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise AttemptTimeoutError(timeout) from e

    async def _backoff(self, delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
        """Sleep for ``delay``. Returns False if cancelled while sleeping."""
        if cancel_event is None:
            await self.scheduler.sleep(delay)
            return True

        sleeper = asyncio.ensure_future(self.scheduler.sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
        return not cancel_event.is_set()
