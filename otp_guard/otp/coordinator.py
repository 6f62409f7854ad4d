"""
OTP Delivery Coordinator
========================
Risk check, cooldown check, retried send and cache update for one OTP
request. Always answers with a :class:`DeliveryResult`, never raises.
"""

import asyncio
import math
from typing import Any, Dict, Optional, Union

import structlog

from ..config import OTPGuardConfig
from ..errors import ErrorKind, classify_error
from ..messages import localize, user_error_message
from ..metrics import DeliveryMetrics, MetricNames
from ..network import HttpReachabilityProbe, NetworkProbe
from ..phone import PHONE_PATTERNS, mask_phone, normalize_phone_key
from ..retry import RetryExecutor, RetryPolicy
from ..risk import PhoneRiskAssessor, RiskAssessment, get_risk_message
from ..scheduling import Clock, Scheduler
from ..storage import DurableStore, InMemoryStore, KeyedLock, RedisStore
from .attempt_guard import VerificationAttemptGuard
from .cache import OTPDedupeCache
from .models import DeliveryResult, OTPChannel
from .offline_queue import OfflineOTPQueue
from .provider import OTPProvider

logger = structlog.get_logger(__name__)

DEFAULT_SEND_POLICY = RetryPolicy(
    max_retries=2,
    initial_delay=1.0,
    backoff_factor=2.0,
    timeout=30.0,
)


class OTPDeliveryCoordinator:
    """
    Orchestrates one ``send_otp`` call.

    Sends for the same number are serialized with a per-number lock shared
    with the offline queue, so two concurrent requests cannot both pass
    the cooldown check. Failed sends are not queued automatically; call
    :meth:`enqueue_offline` to opt in.
    """

    def __init__(
        self,
        provider: OTPProvider,
        executor: RetryExecutor,
        cache: OTPDedupeCache,
        queue: Optional[OfflineOTPQueue] = None,
        assessor: Optional[PhoneRiskAssessor] = None,
        guard: Optional[VerificationAttemptGuard] = None,
        locks: Optional[KeyedLock] = None,
        config: Optional[OTPGuardConfig] = None,
        metrics: Optional[DeliveryMetrics] = None,
        policy: RetryPolicy = DEFAULT_SEND_POLICY,
    ):
        self.provider = provider
        self.executor = executor
        self.cache = cache
        self.queue = queue
        self.config = config or OTPGuardConfig()
        self.assessor = assessor or PhoneRiskAssessor(locale=self.config.locale)
        self.guard = guard
        self.locks = locks or (queue.locks if queue is not None else KeyedLock())
        self.metrics = metrics or DeliveryMetrics()
        self.policy = policy

    @classmethod
    def create(
        cls,
        provider: OTPProvider,
        store: DurableStore,
        probe: NetworkProbe,
        config: Optional[OTPGuardConfig] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        with_guard: bool = False,
    ) -> "OTPDeliveryCoordinator":
        """Wire every collaborator around one store and one probe."""
        config = config or OTPGuardConfig()
        metrics = DeliveryMetrics()
        locks = KeyedLock()
        executor = RetryExecutor(
            probe,
            scheduler=scheduler,
            clock=clock,
            network_wait_timeout=config.network_wait_timeout,
            network_poll_interval=config.network_poll_interval,
        )
        cache = OTPDedupeCache(store, clock=clock, config=config)
        queue = OfflineOTPQueue(
            store,
            cache=cache,
            executor=executor,
            policy=DEFAULT_SEND_POLICY,
            probe=probe,
            clock=clock,
            scheduler=scheduler,
            config=config,
            locks=locks,
            metrics=metrics,
        )
        guard = VerificationAttemptGuard(store, clock=clock, config=config) if with_guard else None
        return cls(
            provider,
            executor,
            cache,
            queue=queue,
            guard=guard,
            locks=locks,
            config=config,
            metrics=metrics,
        )

    @classmethod
    def from_config(
        cls,
        provider: OTPProvider,
        config: Optional[OTPGuardConfig] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        with_guard: bool = False,
    ) -> "OTPDeliveryCoordinator":
        """
        Build a coordinator from configuration alone.

        Uses Redis when ``config.redis_url`` is set and an in-memory store
        otherwise. Connectivity is checked against ``config.reachability_url``.

        Example:
            coordinator = OTPDeliveryCoordinator.from_config(
                provider, OTPGuardConfig.from_env()
            )
        """
        config = config or OTPGuardConfig()
        if config.redis_url:
            store = RedisStore.from_url(config.redis_url)
        else:
            store = InMemoryStore()
        probe = HttpReachabilityProbe(config.reachability_url)
        logger.info(
            "otp_coordinator_configured",
            store=type(store).__name__,
            reachability_url=config.reachability_url,
        )
        return cls.create(
            provider,
            store,
            probe,
            config=config,
            clock=clock,
            scheduler=scheduler,
            with_guard=with_guard,
        )

    async def send_otp(
        self,
        phone: str,
        channel: Union[OTPChannel, str] = OTPChannel.SMS,
        create_user: bool = True,
        country_code: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
        metadata: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DeliveryResult:
        """
        Send a code to ``phone``.

        Args:
            phone: Number in international format
            channel: "sms" or "whatsapp"
            create_user: Let the backend create the account if missing
            country_code: ISO code; enables the risk check when given and
                expands national numbers to international format
            policy: Overrides the default retry policy
            metadata: Extra data forwarded to the provider
            cancel_event: Set it to stop retrying before the next attempt
        """
        phone_key = self._phone_key(phone, country_code)
        self.metrics.increment(MetricNames.SEND_ATTEMPTS)

        try:
            channel = OTPChannel(channel)
        except ValueError:
            logger.info("otp_rejected_invalid_channel", phone=mask_phone(phone_key), channel=str(channel))
            result = DeliveryResult(
                success=False,
                error=localize("invalid_channel", self.config.locale),
                error_kind=ErrorKind.VALIDATION,
            )
            self._record_outcome(result)
            return result

        try:
            with self.metrics.timer(MetricNames.SEND_DURATION):
                result = await self._send(
                    phone, phone_key, channel, create_user, country_code,
                    policy or self.policy, metadata, cancel_event,
                )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("otp_send_unexpected_error", phone=mask_phone(phone_key), error=str(e))
            result = DeliveryResult(
                success=False,
                error=user_error_message(e, self.config.locale),
                error_kind=classify_error(e),
            )

        self._record_outcome(result)
        return result

    async def _send(
        self,
        phone: str,
        phone_key: str,
        channel: OTPChannel,
        create_user: bool,
        country_code: Optional[str],
        policy: RetryPolicy,
        metadata: Optional[Dict[str, Any]],
        cancel_event: Optional[asyncio.Event],
    ) -> DeliveryResult:
        locale = self.config.locale

        if country_code:
            assessment = self.assessor.assess(phone, country_code)
            if not assessment.is_valid:
                logger.info(
                    "otp_rejected_by_risk_check",
                    phone=mask_phone(phone_key),
                    risk_score=assessment.risk_score,
                    reason=assessment.reason_code,
                )
                return DeliveryResult(
                    success=False,
                    error=assessment.reason,
                    error_kind=ErrorKind.VALIDATION,
                )

        if self.guard is not None:
            ban = await self.guard.check(phone_key)
            if ban.is_banned:
                return DeliveryResult(
                    success=False,
                    error=localize(
                        "temporarily_banned", locale,
                        minutes=math.ceil(ban.time_remaining_seconds / 60),
                    ),
                    error_kind=ErrorKind.VALIDATION,
                )

        async with self.locks.hold(phone_key):
            status = await self.cache.check_recent(phone_key)
            if status.has_recent and not status.can_resend:
                logger.info(
                    "otp_already_sent",
                    phone=mask_phone(phone_key),
                    time_remaining=status.time_remaining_seconds,
                )
                return DeliveryResult(
                    success=True,
                    cached=True,
                    error=localize("already_sent", locale, seconds=status.time_remaining_seconds),
                )

            attempt_counter = {"n": 0}

            async def operation():
                attempt_counter["n"] += 1
                payload = dict(metadata or {})
                payload["attempt"] = attempt_counter["n"]
                return await self.provider.send(phone_key, channel, create_user, payload)

            outcome = await self.executor.try_execute(
                operation,
                policy,
                on_retry=self._on_retry,
                cancel_event=cancel_event,
            )

            if outcome.success:
                await self.cache.record_sent(phone_key)
                logger.info(
                    "otp_sent",
                    phone=mask_phone(phone_key),
                    channel=channel.value,
                    attempts=outcome.attempts,
                )
                return DeliveryResult(success=True, attempts=outcome.attempts)

        kind = classify_error(outcome.error)
        logger.warning(
            "otp_send_failed",
            phone=mask_phone(phone_key),
            kind=kind.value,
            attempts=outcome.attempts,
        )
        return DeliveryResult(
            success=False,
            error=user_error_message(outcome.error, locale),
            error_kind=kind,
            attempts=outcome.attempts,
        )

    async def enqueue_offline(
        self,
        phone: str,
        channel: Union[OTPChannel, str] = OTPChannel.SMS,
        create_user: bool = True,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue a request for delivery once connectivity returns."""
        if self.queue is None:
            raise RuntimeError("No offline queue configured")
        await self.queue.enqueue(
            phone,
            {
                "channel": OTPChannel(channel).value,
                "create_user": create_user,
                "metadata": metadata,
            },
        )

    async def drain_offline_queue(self) -> None:
        """Deliver queued requests through the provider. Never raises."""
        if self.queue is None:
            return
        await self.queue.drain(self._send_queued)

    async def clear_cooldown(self, phone: str) -> None:
        """Drop the cooldown entry, typically after a successful verification."""
        await self.cache.clear(phone)

    def get_risk_message(self, assessment: RiskAssessment, locale: Optional[str] = None) -> Optional[str]:
        return get_risk_message(assessment, locale or self.config.locale)

    async def _send_queued(self, phone_key: str, metadata: Optional[Dict[str, Any]]) -> Any:
        metadata = metadata or {}
        payload = dict(metadata.get("metadata") or {})
        payload["source"] = "offline_queue"
        return await self.provider.send(
            phone_key,
            OTPChannel(metadata.get("channel", OTPChannel.SMS.value)),
            bool(metadata.get("create_user", True)),
            payload,
        )

    @staticmethod
    def _phone_key(phone: str, country_code: Optional[str]) -> str:
        pattern = PHONE_PATTERNS.get(country_code.upper()) if country_code else None
        return normalize_phone_key(phone, pattern.calling_code if pattern else None)

    def _on_retry(self, attempt: int, error: BaseException) -> None:
        self.metrics.increment(MetricNames.RETRIES)
        logger.info("otp_send_retry", attempt=attempt, error=str(error))

    def _record_outcome(self, result: DeliveryResult) -> None:
        if result.cached:
            self.metrics.increment(MetricNames.SEND_CACHED)
        elif result.success:
            self.metrics.increment(MetricNames.SEND_SUCCESS)
        else:
            kind = result.error_kind.value if result.error_kind else ErrorKind.UNKNOWN.value
            self.metrics.increment(MetricNames.SEND_FAILED, labels={"kind": kind})
