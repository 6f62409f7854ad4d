"""
OTP Dedupe Cache
================
Per-number send cooldown persisted in the durable store.

An entry lives for ``cooldown_window`` (5 minutes) after a successful
send. A resend is allowed once ``resend_threshold`` (60 seconds) has
passed, even while the entry is still live. The cache is an
optimization: every failure degrades to "no entry".
"""

import asyncio
import math
from typing import Optional

import structlog

from ..config import OTPGuardConfig
from ..phone import mask_phone, normalize_phone_key
from ..scheduling import Clock, SystemClock
from ..storage import DurableStore
from .models import CooldownStatus, DedupeEntry
from .persistence import load_collection, save_collection

logger = structlog.get_logger(__name__)


class OTPDedupeCache:
    """Cooldown tracker keyed by normalized phone number."""

    def __init__(
        self,
        store: DurableStore,
        clock: Optional[Clock] = None,
        config: Optional[OTPGuardConfig] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.config = config or OTPGuardConfig()
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self.config.cache_key

    async def get_entry(self, phone: str) -> Optional[DedupeEntry]:
        """Live entry for ``phone``, or None."""
        phone_key = normalize_phone_key(phone)
        entries = await load_collection(self.store, self.key)
        entry = self._parse(entries.get(phone_key))
        if entry is None or entry.is_expired(self.clock.now()):
            return None
        return entry

    async def check_recent(self, phone: str) -> CooldownStatus:
        """
        Report whether a code was sent recently and whether another may go out.

        Stale entries are deleted on the way.
        """
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            entry = self._parse(entries.get(phone_key))
            now = self.clock.now()

            if entry is None or entry.is_expired(now):
                if phone_key in entries:
                    del entries[phone_key]
                    await save_collection(self.store, self.key, entries)
                return CooldownStatus.none()

        return CooldownStatus(
            has_recent=True,
            can_resend=(now - entry.sent_at) > self.config.resend_threshold,
            time_remaining_seconds=max(0, math.ceil(entry.expires_at - now)),
        )

    async def record_sent(self, phone: str) -> None:
        """Upsert the entry after a successful send. Never raises on store errors."""
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            now = self.clock.now()
            previous = self._parse(entries.get(phone_key))

            retry_count = 0
            if previous is not None and not previous.is_expired(now):
                retry_count = previous.retry_count + 1

            entries[phone_key] = DedupeEntry(
                phone_key=phone_key,
                sent_at=now,
                expires_at=now + self.config.cooldown_window,
                retry_count=retry_count,
            ).to_dict()

            if await save_collection(self.store, self.key, entries):
                logger.info("otp_send_recorded", phone=mask_phone(phone_key), retry_count=retry_count)

    async def clear(self, phone: str) -> None:
        """Forget a number, e.g. after successful verification. Idempotent."""
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            if entries.pop(phone_key, None) is not None:
                await save_collection(self.store, self.key, entries)

    async def cleanup(self) -> int:
        """Delete every expired or unreadable entry. Returns how many went."""
        async with self._lock:
            entries = await load_collection(self.store, self.key)
            now = self.clock.now()
            live = {}
            for phone_key, raw in entries.items():
                entry = self._parse(raw)
                if entry is not None and not entry.is_expired(now):
                    live[phone_key] = raw
            removed = len(entries) - len(live)
            if removed:
                await save_collection(self.store, self.key, live)
                logger.info("otp_cache_cleaned", removed=removed)
            return removed

    @staticmethod
    def _parse(raw) -> Optional[DedupeEntry]:
        if raw is None:
            return None
        try:
            return DedupeEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("otp_cache_entry_corrupt", error=str(e))
            return None
