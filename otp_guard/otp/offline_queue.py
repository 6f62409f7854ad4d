"""
Offline OTP Queue
=================
Durable queue of OTP requests made while offline, drained when the
connection comes back.

Lifecycle of an entry:
- ``enqueue`` inserts it, or refreshes the timestamp and resets the retry
  count of the live entry for the same number
- ``drain`` sends it; success removes it, failure or an active cooldown
  bumps ``retry_count``
- it is dropped once ``retry_count`` reaches ``max_queue_retries`` (3) or
  ``queue_ttl`` (24h) has elapsed since it was enqueued
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from ..config import OTPGuardConfig
from ..metrics import DeliveryMetrics, MetricNames
from ..network import NetworkProbe
from ..phone import mask_phone, normalize_phone_key
from ..retry import RetryExecutor, RetryPolicy
from ..scheduling import AsyncioScheduler, Clock, Scheduler, SystemClock
from ..storage import DurableStore, KeyedLock
from .cache import OTPDedupeCache
from .models import QueuedOTPRequest
from .persistence import load_collection, save_collection

logger = structlog.get_logger(__name__)

SendFunction = Callable[[str, Optional[Dict[str, Any]]], Awaitable[Any]]

_REMOVE = None


class OfflineOTPQueue:
    """
    Example:
        queue = OfflineOTPQueue(store, cache=cache, executor=executor)
        await queue.enqueue("+33612345678", {"channel": "sms"})
        ...
        await queue.drain(send_fn)
    """

    def __init__(
        self,
        store: DurableStore,
        cache: Optional[OTPDedupeCache] = None,
        executor: Optional[RetryExecutor] = None,
        policy: Optional[RetryPolicy] = None,
        probe: Optional[NetworkProbe] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[OTPGuardConfig] = None,
        locks: Optional[KeyedLock] = None,
        metrics: Optional[DeliveryMetrics] = None,
    ):
        self.store = store
        self.cache = cache
        self.executor = executor
        self.policy = policy
        self.probe = probe
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncioScheduler()
        self.config = config or OTPGuardConfig()
        self.locks = locks or KeyedLock()
        self.metrics = metrics
        self._lock = asyncio.Lock()
        self._drain_lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self.config.queue_key

    async def enqueue(self, phone: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Add or refresh the request for ``phone``. Never touches the network."""
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            now = self.clock.now()
            existing = self._parse(entries.get(phone_key))

            if existing is not None:
                existing.enqueued_at = now
                existing.retry_count = 0
                existing.metadata = metadata
                request = existing
            else:
                request = QueuedOTPRequest(phone_key=phone_key, enqueued_at=now, metadata=metadata)

            entries[phone_key] = request.to_dict()
            if await save_collection(self.store, self.key, entries):
                self._count(MetricNames.QUEUE_ENQUEUED)
                logger.info("otp_request_queued", phone=mask_phone(phone_key), request_id=request.id)

    async def get_queue(self) -> List[QueuedOTPRequest]:
        """Entries in insertion order."""
        entries = await load_collection(self.store, self.key)
        parsed = (self._parse(raw) for raw in entries.values())
        return [request for request in parsed if request is not None]

    async def count(self) -> int:
        return len(await self.get_queue())

    async def remove(self, phone: str) -> None:
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            if entries.pop(phone_key, None) is not None:
                await save_collection(self.store, self.key, entries)

    async def clear(self) -> None:
        async with self._lock:
            try:
                await self.store.remove(self.key)
                logger.info("otp_queue_cleared")
            except Exception as e:
                logger.warning("otp_queue_clear_failed", error=str(e))

    async def cleanup(self) -> int:
        """
        Drop expired and exhausted entries without sending anything.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            now = self.clock.now()
            kept = {}
            for phone_key, raw in entries.items():
                request = self._parse(raw)
                if request is None:
                    continue
                drop_reason = self._drop_reason(request, now)
                if drop_reason is None:
                    kept[phone_key] = raw
                else:
                    self._count(MetricNames.QUEUE_DROPPED, reason=drop_reason)

            removed = len(entries) - len(kept)
            if removed:
                await save_collection(self.store, self.key, kept)
                logger.info("otp_queue_cleaned", removed=removed)
            return removed

    async def drain(self, send_fn: SendFunction) -> None:
        """
        Attempt delivery of every queued request.

        Never raises: failures stay in the queue with a bumped retry count,
        and progress is written once at the end, even if cancelled midway.
        """
        if self._drain_lock.locked():
            logger.info("otp_queue_drain_already_running")
            return

        async with self._drain_lock:
            if self.probe is not None:
                try:
                    state = await self.probe.current()
                except Exception as e:
                    logger.warning("otp_queue_probe_failed", error=str(e))
                    return
                if not state.connected:
                    logger.info("otp_queue_drain_skipped_offline")
                    return

            snapshot = await self.get_queue()
            if not snapshot:
                return

            logger.info("otp_queue_draining", pending=len(snapshot))
            outcomes: Dict[str, Optional[int]] = {}
            try:
                await self._process(snapshot, send_fn, outcomes)
            finally:
                await self._commit(snapshot, outcomes)

    async def _process(
        self,
        snapshot: List[QueuedOTPRequest],
        send_fn: SendFunction,
        outcomes: Dict[str, Optional[int]],
    ) -> None:
        now = self.clock.now()
        processed = 0

        for request in snapshot:
            drop_reason = self._drop_reason(request, now)
            if drop_reason is not None:
                outcomes[request.id] = _REMOVE
                self._count(MetricNames.QUEUE_DROPPED, reason=drop_reason)
                logger.info("otp_request_dropped", phone=mask_phone(request.phone_key), reason=drop_reason)
                continue

            if processed:
                await self.scheduler.sleep(self.config.drain_spacing)
            processed += 1

            try:
                outcomes[request.id] = await self._deliver(request, send_fn)
            except Exception as e:
                logger.error("otp_request_failed", phone=mask_phone(request.phone_key), error=str(e))
                outcomes[request.id] = request.retry_count + 1

    async def _deliver(self, request: QueuedOTPRequest, send_fn: SendFunction) -> Optional[int]:
        async with self.locks.hold(request.phone_key):
            if self.cache is not None:
                status = await self.cache.check_recent(request.phone_key)
                if status.has_recent and not status.can_resend:
                    self._count(MetricNames.QUEUE_DEFERRED)
                    logger.info(
                        "otp_request_deferred",
                        phone=mask_phone(request.phone_key),
                        time_remaining=status.time_remaining_seconds,
                    )
                    return request.retry_count + 1

            await self._send(request, send_fn)

            if self.cache is not None:
                await self.cache.record_sent(request.phone_key)

        self._count(MetricNames.QUEUE_SENT)
        logger.info("otp_request_delivered", phone=mask_phone(request.phone_key))
        return _REMOVE

    async def _send(self, request: QueuedOTPRequest, send_fn: SendFunction) -> Any:
        if self.executor is None:
            return await send_fn(request.phone_key, request.metadata)
        return await self.executor.execute(
            lambda: send_fn(request.phone_key, request.metadata),
            self.policy,
        )

    async def _commit(self, snapshot: List[QueuedOTPRequest], outcomes: Dict[str, Optional[int]]) -> None:
        """Apply outcomes onto a fresh read so concurrent enqueues survive."""
        if not outcomes:
            return

        seen = {request.id: request for request in snapshot}
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            updated = {}
            for phone_key, raw in entries.items():
                current = self._parse(raw)
                if current is None:
                    continue
                original = seen.get(current.id)
                untouched = (
                    current.id not in outcomes
                    or original is None
                    or current.enqueued_at != original.enqueued_at
                )
                if untouched:
                    updated[phone_key] = raw
                    continue

                retry_count = outcomes[current.id]
                if retry_count is _REMOVE:
                    continue
                if retry_count >= self.config.max_queue_retries:
                    self._count(MetricNames.QUEUE_DROPPED, reason="exhausted")
                    logger.info("otp_request_exhausted", phone=mask_phone(phone_key))
                    continue
                current.retry_count = retry_count
                updated[phone_key] = current.to_dict()

            await save_collection(self.store, self.key, updated)

        remaining = len(updated)
        if remaining:
            logger.info("otp_queue_remaining", remaining=remaining)
        else:
            logger.info("otp_queue_drained")

    def _drop_reason(self, request: QueuedOTPRequest, now: float) -> Optional[str]:
        if now - request.enqueued_at > self.config.queue_ttl:
            return "expired"
        if request.retry_count >= self.config.max_queue_retries:
            return "exhausted"
        return None

    def _count(self, name: str, **labels) -> None:
        if self.metrics is not None:
            self.metrics.increment(name, labels=labels or None)

    @staticmethod
    def _parse(raw) -> Optional[QueuedOTPRequest]:
        if raw is None:
            return None
        try:
            return QueuedOTPRequest.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("otp_queue_entry_corrupt", error=str(e))
            return None
