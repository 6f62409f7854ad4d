"""
OTP Guard Configuration
=======================
Tunables for cooldowns, offline queueing and connectivity waits.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class OTPGuardConfig:
    """Configuration shared by the cache, queue, executor and coordinator."""
    cooldown_window: float = 300.0       # DedupeEntry lifetime (5 minutes)
    resend_threshold: float = 60.0       # Min time between two sends
    queue_ttl: float = 86400.0           # Offline request lifetime (24h)
    max_queue_retries: int = 3
    drain_spacing: float = 0.5           # Pause between drained entries
    network_wait_timeout: float = 10.0
    network_poll_interval: float = 1.0
    cache_key: str = "@otp_cache"
    queue_key: str = "@offline_otp_queue"
    failed_attempts_key: str = "@otp_failed_attempts"
    ban_status_key: str = "@otp_ban_status"
    locale: str = "en"
    redis_url: Optional[str] = None
    reachability_url: str = "https://clients3.google.com/generate_204"

    @property
    def owned_keys(self) -> Tuple[str, ...]:
        """Every store key written by otp_guard, for export and purge tooling."""
        return (self.cache_key, self.queue_key, self.failed_attempts_key, self.ban_status_key)

    @classmethod
    def from_env(cls) -> "OTPGuardConfig":
        """Build a config from ``OTP_GUARD_*`` environment variables."""
        defaults = cls()
        return cls(
            cooldown_window=_env_float("OTP_GUARD_COOLDOWN_WINDOW", defaults.cooldown_window),
            resend_threshold=_env_float("OTP_GUARD_RESEND_THRESHOLD", defaults.resend_threshold),
            queue_ttl=_env_float("OTP_GUARD_QUEUE_TTL", defaults.queue_ttl),
            max_queue_retries=_env_int("OTP_GUARD_MAX_QUEUE_RETRIES", defaults.max_queue_retries),
            drain_spacing=_env_float("OTP_GUARD_DRAIN_SPACING", defaults.drain_spacing),
            network_wait_timeout=_env_float(
                "OTP_GUARD_NETWORK_WAIT_TIMEOUT", defaults.network_wait_timeout
            ),
            network_poll_interval=_env_float(
                "OTP_GUARD_NETWORK_POLL_INTERVAL", defaults.network_poll_interval
            ),
            cache_key=os.environ.get("OTP_GUARD_CACHE_KEY", defaults.cache_key),
            queue_key=os.environ.get("OTP_GUARD_QUEUE_KEY", defaults.queue_key),
            locale=os.environ.get("OTP_GUARD_LOCALE", defaults.locale),
            redis_url=os.environ.get("OTP_GUARD_REDIS_URL") or None,
            reachability_url=os.environ.get(
                "OTP_GUARD_REACHABILITY_URL", defaults.reachability_url
            ),
        )
