"""
Namespace Tooling
=================
Export and purge helpers for every key owned by otp_guard.

Usage:
    config = OTPGuardConfig()
    await purge_namespace(store, config.owned_keys)
"""

from typing import Dict, Tuple, Union

import structlog

from .base import DurableStore

logger = structlog.get_logger(__name__)

Prefixes = Union[str, Tuple[str, ...]]


async def export_namespace(store: DurableStore, prefix: Prefixes) -> Dict[str, str]:
    """Return every ``key -> value`` whose key starts with ``prefix``."""
    exported: Dict[str, str] = {}
    for key in await store.all_keys():
        if not key.startswith(prefix):
            continue
        value = await store.get(key)
        if value is not None:
            exported[key] = value
    return exported


async def purge_namespace(store: DurableStore, prefix: Prefixes) -> int:
    """
    Remove every key starting with ``prefix``.

    Args:
        store: Backend to clean
        prefix: One prefix or a tuple of prefixes

    Returns:
        Number of keys removed
    """
    removed = 0
    for key in await store.all_keys():
        if key.startswith(prefix):
            await store.remove(key)
            removed += 1
    logger.info("namespace_purged", prefix=prefix, removed=removed)
    return removed
