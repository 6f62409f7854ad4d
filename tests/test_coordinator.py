"""
Tests for the OTP Delivery Coordinator
======================================
End-to-end send flow over fakes: risk gate, cooldown, retries, error
messages, offline queue and verification lockout.
"""

import asyncio

import pytest

PHONE = "+33612345678"


def make_coordinator(provider, store, probe, clock, **kwargs):
    from otp_guard.otp import OTPDeliveryCoordinator

    return OTPDeliveryCoordinator.create(
        provider, store, probe, clock=clock, scheduler=clock, **kwargs
    )


class TestSendOTP:
    """Tests for the happy path and cooldown."""

    @pytest.mark.asyncio
    async def test_success(self, provider, store, probe, clock):
        """Should send once and report success."""
        from otp_guard.otp import OTPChannel

        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp("+33 6 12 34 56 78", metadata={"source": "login"})

        assert result.success is True
        assert result.cached is False
        assert result.error is None
        assert result.attempts == 1
        assert provider.calls == [{
            "phone": PHONE,
            "channel": OTPChannel.SMS,
            "create_user": True,
            "metadata": {"source": "login", "attempt": 1},
        }]

    @pytest.mark.asyncio
    async def test_second_send_is_cached(self, provider, store, probe, clock):
        """Should not call the provider again inside the resend threshold."""
        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.send_otp(PHONE)
        clock.advance(10)
        result = await coordinator.send_otp(PHONE)

        assert result.success is True
        assert result.cached is True
        assert result.error == "A code was already sent. It expires in 290s."
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_national_and_international_share_cooldown(self, provider, store, probe, clock):
        """Should treat a national number and its international form as one number."""
        coordinator = make_coordinator(provider, store, probe, clock)

        first = await coordinator.send_otp("06 71 42 85 93", country_code="FR")
        second = await coordinator.send_otp("+33671428593")

        assert first.success is True
        assert second.cached is True
        assert [call["phone"] for call in provider.calls] == ["+33671428593"]

    @pytest.mark.asyncio
    async def test_national_number_without_country_kept_apart(self, provider, store, probe, clock):
        """Should not guess a calling code when no country is given."""
        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.send_otp("0671428593")
        second = await coordinator.send_otp("+33671428593")

        assert second.cached is False
        assert [call["phone"] for call in provider.calls] == ["0671428593", "+33671428593"]

    @pytest.mark.asyncio
    async def test_resend_after_threshold(self, provider, store, probe, clock):
        """Should send again after 60 seconds."""
        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.send_otp(PHONE)
        clock.advance(61)
        result = await coordinator.send_otp(PHONE)

        assert result.cached is False
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_sends_single_delivery(self, provider, store, probe, clock):
        """Should let only one of two simultaneous sends reach the provider."""
        coordinator = make_coordinator(provider, store, probe, clock)

        results = await asyncio.gather(
            coordinator.send_otp(PHONE),
            coordinator.send_otp(PHONE),
        )

        assert len(provider.calls) == 1
        assert sorted(result.cached for result in results) == [False, True]

    @pytest.mark.asyncio
    async def test_clear_cooldown(self, provider, store, probe, clock):
        """Should allow an immediate send after clearing."""
        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.send_otp(PHONE)
        await coordinator.clear_cooldown(PHONE)
        result = await coordinator.send_otp(PHONE)

        assert result.cached is False
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_whatsapp_channel(self, provider, store, probe, clock):
        """Should accept the channel as a string."""
        from otp_guard.otp import OTPChannel

        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.send_otp(PHONE, channel="whatsapp", create_user=False)

        assert provider.calls[0]["channel"] == OTPChannel.WHATSAPP
        assert provider.calls[0]["create_user"] is False


class TestRiskGate:
    """Tests for the pre-send risk check."""

    @pytest.mark.asyncio
    async def test_rejects_disposable(self, provider, store, probe, clock):
        """Should refuse a high-risk number without calling the provider."""
        from otp_guard.errors import ErrorKind

        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp("+33703456789", country_code="FR")

        assert result.success is False
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error == "Virtual number detected (Online SMS)"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_skipped_without_country(self, provider, store, probe, clock):
        """Should not assess when no country is given."""
        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp("+33703456789")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_localized_reason(self, provider, store, probe, clock):
        """Should return the reason in the configured locale."""
        from otp_guard.config import OTPGuardConfig

        coordinator = make_coordinator(provider, store, probe, clock, config=OTPGuardConfig(locale="fr"))

        result = await coordinator.send_otp("+33 1 42 68 53 00", country_code="FR")

        assert result.error == "Format invalide pour un numéro français"

    def test_risk_message(self, provider, store, probe, clock):
        """Should expose the localized risk message."""
        from otp_guard.risk import PhoneRiskAssessor

        coordinator = make_coordinator(provider, store, probe, clock)
        assessment = PhoneRiskAssessor().assess("+33703456789", "FR")

        assert coordinator.get_risk_message(assessment) == (
            "This number looks temporary. Use your personal number to continue."
        )


class TestSendFailures:
    """Tests for retries and error mapping."""

    @pytest.mark.asyncio
    async def test_transient_then_success(self, provider, store, probe, clock):
        """Should retry a 503 and succeed."""
        from otp_guard.errors import ProviderError
        from otp_guard.metrics import MetricNames

        provider.outcomes = [ProviderError("Service unavailable", status_code=503)]
        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp(PHONE)

        assert result.success is True
        assert result.attempts == 2
        assert clock.sleeps == [1.0]
        assert provider.calls[1]["metadata"] == {"attempt": 2}
        assert coordinator.metrics.get_counter(MetricNames.RETRIES) == 1

    @pytest.mark.asyncio
    async def test_rejection_not_retried(self, provider, store, probe, clock):
        """Should surface a 400 once with a friendly message."""
        from otp_guard.errors import ErrorKind, ProviderError

        provider.outcomes = [ProviderError("Invalid phone number", status_code=400)]
        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp(PHONE)

        assert result.success is False
        assert result.error_kind == ErrorKind.PROVIDER_REJECTION
        assert result.error == "Invalid phone number. Check the format."
        assert len(provider.calls) == 1
        assert (await coordinator.cache.check_recent(PHONE)).has_recent is False

    @pytest.mark.asyncio
    async def test_network_exhausted(self, provider, store, probe, clock):
        """Should give up after three attempts with the network message."""
        from otp_guard.errors import ErrorKind

        provider.outcomes = [ConnectionError("connection reset")] * 3
        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp(PHONE)

        assert result.success is False
        assert result.error_kind == ErrorKind.TRANSIENT_NETWORK
        assert result.error == "Connection problem. Check your internet connection."
        assert result.attempts == 3
        assert clock.sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_rate_limited(self, provider, store, probe, clock):
        """Should report rate limiting after retries run out."""
        from otp_guard.errors import ErrorKind, ProviderError

        provider.outcomes = [ProviderError("Too many requests", status_code=429)] * 3
        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp(PHONE)

        assert result.error_kind == ErrorKind.RATE_LIMITED
        assert result.error == "Too many attempts. Please wait a few minutes."

    @pytest.mark.asyncio
    async def test_offline(self, provider, store, probe, clock):
        """Should fail with the network message without calling the provider."""
        from otp_guard.errors import ErrorKind

        probe.set_offline()
        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp(PHONE)

        assert result.success is False
        assert result.error_kind == ErrorKind.TRANSIENT_NETWORK
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_cancelled(self, provider, store, probe, clock):
        """Should report cancellation."""
        from otp_guard.errors import ErrorKind

        coordinator = make_coordinator(provider, store, probe, clock)
        cancel = asyncio.Event()
        cancel.set()

        result = await coordinator.send_otp(PHONE, cancel_event=cancel)

        assert result.error_kind == ErrorKind.CANCELLED
        assert result.error == "Sending was cancelled."
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_never_raises(self, provider, store, probe, clock):
        """Should turn unexpected errors into a failed result."""
        from otp_guard.errors import ErrorKind

        class BrokenAssessor:
            def assess(self, phone_number, country_code=None):
                raise RuntimeError("assessor crashed")

        coordinator = make_coordinator(provider, store, probe, clock)
        coordinator.assessor = BrokenAssessor()

        result = await coordinator.send_otp(PHONE, country_code="FR")

        assert result.success is False
        assert result.error == "Could not send the SMS. Please try again."
        assert result.error_kind == ErrorKind.UNKNOWN
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_channel(self, provider, store, probe, clock):
        """Should reject an unknown channel as a validation failure."""
        from otp_guard.errors import ErrorKind
        from otp_guard.metrics import MetricNames

        coordinator = make_coordinator(provider, store, probe, clock)

        result = await coordinator.send_otp(PHONE, channel="fax")

        assert result.success is False
        assert result.error == "Unsupported delivery channel."
        assert result.error_kind == ErrorKind.VALIDATION
        assert provider.calls == []
        assert coordinator.metrics.get_counter(
            MetricNames.SEND_FAILED, labels={"kind": "validation"}
        ) == 1

    @pytest.mark.asyncio
    async def test_unsupported_channel_localized(self, provider, store, probe, clock):
        """Should word the channel rejection in the configured locale."""
        from otp_guard.config import OTPGuardConfig

        coordinator = make_coordinator(
            provider, store, probe, clock, config=OTPGuardConfig(locale="fr")
        )

        result = await coordinator.send_otp(PHONE, channel="carrier-pigeon")

        assert result.error == "Canal d'envoi non pris en charge."

    @pytest.mark.asyncio
    async def test_store_down(self, provider, failing_store, probe, clock):
        """Should still send when the cache cannot be read or written."""
        coordinator = make_coordinator(provider, failing_store, probe, clock)

        first = await coordinator.send_otp(PHONE)
        second = await coordinator.send_otp(PHONE)

        assert first.success is True
        assert second.cached is False
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_failure_metrics(self, provider, store, probe, clock):
        """Should count failures by kind."""
        from otp_guard.errors import ProviderError
        from otp_guard.metrics import MetricNames

        provider.outcomes = [ProviderError("Bad request", status_code=400)]
        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.send_otp(PHONE)

        assert coordinator.metrics.get_counter(MetricNames.SEND_ATTEMPTS) == 1
        assert coordinator.metrics.get_counter(
            MetricNames.SEND_FAILED, labels={"kind": "provider_rejection"}
        ) == 1


class TestOfflineFlow:
    """Tests for queueing and draining through the coordinator."""

    @pytest.mark.asyncio
    async def test_enqueue_and_drain(self, provider, store, probe, clock):
        """Should deliver queued requests once drained."""
        from otp_guard.otp import OTPChannel

        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.enqueue_offline(PHONE, channel="whatsapp", metadata={"event_id": "42"})
        await coordinator.drain_offline_queue()

        assert provider.calls == [{
            "phone": PHONE,
            "channel": OTPChannel.WHATSAPP,
            "create_user": True,
            "metadata": {"event_id": "42", "source": "offline_queue"},
        }]
        assert await coordinator.queue.count() == 0

    @pytest.mark.asyncio
    async def test_drained_number_is_cooling_down(self, provider, store, probe, clock):
        """Should treat a number just sent from the queue as already sent."""
        coordinator = make_coordinator(provider, store, probe, clock)

        await coordinator.enqueue_offline(PHONE)
        await coordinator.drain_offline_queue()
        result = await coordinator.send_otp(PHONE)

        assert result.cached is True
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_enqueue_without_queue(self, provider, store, probe, clock):
        """Should refuse to queue when no queue is configured."""
        from otp_guard.otp import OTPDedupeCache, OTPDeliveryCoordinator
        from otp_guard.retry import RetryExecutor

        coordinator = OTPDeliveryCoordinator(
            provider,
            RetryExecutor(probe, scheduler=clock, clock=clock),
            OTPDedupeCache(store, clock=clock),
        )

        with pytest.raises(RuntimeError):
            await coordinator.enqueue_offline(PHONE)
        await coordinator.drain_offline_queue()


class TestVerificationLockout:
    """Tests for sends refused after repeated wrong codes."""

    @pytest.mark.asyncio
    async def test_banned_number_refused(self, provider, store, probe, clock):
        """Should refuse to send to a locked-out number."""
        from otp_guard.errors import ErrorKind

        coordinator = make_coordinator(provider, store, probe, clock, with_guard=True)
        for _ in range(5):
            await coordinator.guard.record_failure(PHONE)

        result = await coordinator.send_otp(PHONE)

        assert result.success is False
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error == "Too many failed attempts. Try again in 60 minutes."
        assert provider.calls == []


class TestFromConfig:
    """Tests for building a coordinator from configuration alone."""

    def test_in_memory_without_redis_url(self, provider):
        """Should fall back to an in-memory store and check the configured URL."""
        from otp_guard.config import OTPGuardConfig
        from otp_guard.network import HttpReachabilityProbe
        from otp_guard.otp import OTPDeliveryCoordinator
        from otp_guard.storage import InMemoryStore

        config = OTPGuardConfig(reachability_url="https://status.example.com/ping")

        coordinator = OTPDeliveryCoordinator.from_config(provider, config)

        assert isinstance(coordinator.cache.store, InMemoryStore)
        assert coordinator.queue.store is coordinator.cache.store
        assert isinstance(coordinator.executor.probe, HttpReachabilityProbe)
        assert coordinator.executor.probe.url == "https://status.example.com/ping"
        assert coordinator.config is config

    @pytest.mark.asyncio
    async def test_redis_when_url_set(self, provider):
        """Should back the cache and queue with Redis when a URL is configured."""
        from otp_guard.config import OTPGuardConfig
        from otp_guard.otp import OTPDeliveryCoordinator
        from otp_guard.storage import RedisStore

        config = OTPGuardConfig(redis_url="redis://localhost:6379/0")

        coordinator = OTPDeliveryCoordinator.from_config(provider, config, with_guard=True)

        assert isinstance(coordinator.cache.store, RedisStore)
        assert coordinator.guard.store is coordinator.cache.store
        await coordinator.cache.store.close()

    @pytest.mark.asyncio
    async def test_reachability_url_drives_sends(self, provider, clock):
        """Should refuse to send while the configured URL is unreachable."""
        import httpx

        from otp_guard.config import OTPGuardConfig
        from otp_guard.errors import ErrorKind
        from otp_guard.otp import OTPDeliveryCoordinator

        hits = []

        def handler(request):
            hits.append(str(request.url))
            raise httpx.ConnectError("unreachable", request=request)

        config = OTPGuardConfig(
            reachability_url="https://status.example.com/ping",
            network_wait_timeout=0.0,
        )
        coordinator = OTPDeliveryCoordinator.from_config(
            provider, config, clock=clock, scheduler=clock
        )
        coordinator.executor.probe._client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler)
        )

        result = await coordinator.send_otp(PHONE)
        await coordinator.executor.probe._client.aclose()

        assert result.success is False
        assert result.error_kind == ErrorKind.TRANSIENT_NETWORK
        assert hits and all(url == "https://status.example.com/ping" for url in hits)
        assert provider.calls == []
