"""
Verification Attempt Guard
==========================
Local brute-force protection for OTP verification: too many failed codes
for one number within a window lock it out for a while.
"""

import asyncio
import math
from typing import Any, Dict, List, Optional

import structlog

from ..config import OTPGuardConfig
from ..phone import mask_phone, normalize_phone_key
from ..scheduling import Clock, SystemClock
from ..storage import DurableStore
from .models import BanStatus
from .persistence import load_collection, save_collection

logger = structlog.get_logger(__name__)


class VerificationAttemptGuard:
    """
    Tracks failed verification attempts per number.

    Defaults: 5 failures within 10 minutes ban the number for 1 hour.
    Store failures degrade to "not banned".
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Optional[Clock] = None,
        config: Optional[OTPGuardConfig] = None,
        max_attempts: int = 5,
        window: float = 600.0,
        ban_duration: float = 3600.0,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.config = config or OTPGuardConfig()
        self.max_attempts = max_attempts
        self.window = window
        self.ban_duration = ban_duration
        self._lock = asyncio.Lock()

    async def record_failure(self, phone: str) -> BanStatus:
        """Record a wrong code and return the resulting ban status."""
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            now = self.clock.now()
            attempts = await load_collection(self.store, self.config.failed_attempts_key)
            recent = self._recent(attempts.get(phone_key), now)
            recent.append(now)

            if len(recent) >= self.max_attempts:
                attempts.pop(phone_key, None)
                await save_collection(self.store, self.config.failed_attempts_key, attempts)
                return await self._ban(phone_key, now, len(recent))

            attempts[phone_key] = {"timestamps": recent}
            await save_collection(self.store, self.config.failed_attempts_key, attempts)
            return BanStatus(is_banned=False, phone_key=phone_key)

    async def check(self, phone: str) -> BanStatus:
        phone_key = normalize_phone_key(phone)
        bans = await load_collection(self.store, self.config.ban_status_key)
        ban = bans.get(phone_key)
        now = self.clock.now()
        try:
            banned_until = float(ban["banned_until"]) if ban else None
        except (KeyError, TypeError, ValueError):
            banned_until = None

        if banned_until is None or banned_until <= now:
            return BanStatus(is_banned=False, phone_key=phone_key)

        return BanStatus(
            is_banned=True,
            banned_until=banned_until,
            reason=ban.get("reason"),
            phone_key=phone_key,
            time_remaining_seconds=max(0, math.ceil(banned_until - now)),
        )

    async def reset(self, phone: str) -> None:
        """Forget failures and any ban, e.g. after a successful verification."""
        phone_key = normalize_phone_key(phone)
        async with self._lock:
            for key in (self.config.failed_attempts_key, self.config.ban_status_key):
                data = await load_collection(self.store, key)
                if data.pop(phone_key, None) is not None:
                    await save_collection(self.store, key, data)

    def _recent(self, raw: Optional[Dict[str, Any]], now: float) -> List[float]:
        timestamps = (raw or {}).get("timestamps") or []
        recent = []
        for ts in timestamps:
            try:
                ts = float(ts)
            except (TypeError, ValueError):
                continue
            if now - ts < self.window:
                recent.append(ts)
        return recent

    async def _ban(self, phone_key: str, now: float, failures: int) -> BanStatus:
        banned_until = now + self.ban_duration
        reason = f"Too many failed attempts ({failures} in {int(self.window // 60)} minutes)"
        bans = await load_collection(self.store, self.config.ban_status_key)
        bans[phone_key] = {"banned_until": banned_until, "reason": reason}
        await save_collection(self.store, self.config.ban_status_key, bans)

        logger.warning("otp_verification_banned", phone=mask_phone(phone_key), failures=failures)
        return BanStatus(
            is_banned=True,
            banned_until=banned_until,
            reason=reason,
            phone_key=phone_key,
            time_remaining_seconds=math.ceil(self.ban_duration),
        )
