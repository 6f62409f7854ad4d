"""
Shared Test Fixtures
====================
Virtual time, in-memory storage, a settable network probe and a
scripted OTP provider.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from otp_guard.config import OTPGuardConfig
from otp_guard.network import StaticNetworkProbe
from otp_guard.otp import OTPChannel, OTPProvider
from otp_guard.scheduling import Clock, Scheduler
from otp_guard.storage import InMemoryStore, StoreError

START_TIME = 1_700_000_000.0


class FakeClock(Clock, Scheduler):
    """Virtual clock. ``sleep`` advances time instantly and records the delay."""

    def __init__(self, start: float = START_TIME):
        self.current = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)


class FailingStore(InMemoryStore):
    """Store whose backend is down."""

    async def get(self, key):
        raise StoreError("backend unavailable")

    async def set(self, key, value):
        raise StoreError("backend unavailable")

    async def remove(self, key):
        raise StoreError("backend unavailable")

    async def all_keys(self):
        raise StoreError("backend unavailable")


class ScriptedProvider(OTPProvider):
    """
    Provider replaying a script of outcomes, one per call.

    An exception in the script is raised, anything else is returned.
    Once the script runs out every call succeeds.
    """

    name = "scripted"

    def __init__(self, outcomes: Optional[List[Any]] = None):
        self.outcomes = list(outcomes or [])
        self.calls: List[Dict[str, Any]] = []

    async def send(
        self,
        phone: str,
        channel: OTPChannel,
        create_user: bool,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        self.calls.append({
            "phone": phone,
            "channel": channel,
            "create_user": create_user,
            "metadata": metadata,
        })
        await asyncio.sleep(0)
        outcome = self.outcomes.pop(0) if self.outcomes else {"status": "sent"}
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def probe():
    return StaticNetworkProbe()


@pytest.fixture
def config():
    return OTPGuardConfig()


@pytest.fixture
def provider():
    """Scripted provider; assign ``provider.outcomes`` to script failures."""
    return ScriptedProvider()
