"""
Keyed Collection Persistence
============================
JSON object stored under a single namespaced key. Unreadable payloads
and backend failures degrade to an empty collection.
"""

import json
from typing import Any, Dict

import structlog

from ..storage import DurableStore

logger = structlog.get_logger(__name__)


async def load_collection(store: DurableStore, key: str) -> Dict[str, Dict[str, Any]]:
    """Read the collection, or ``{}`` if it is missing, corrupt or unreachable."""
    try:
        raw = await store.get(key)
    except Exception as e:
        logger.warning("store_read_failed", key=key, error=str(e))
        return {}

    if not raw:
        return {}

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("store_payload_corrupt", key=key, error=str(e))
        return {}

    if not isinstance(data, dict):
        logger.warning("store_payload_corrupt", key=key, error="expected an object")
        return {}
    return {k: v for k, v in data.items() if isinstance(v, dict)}


async def save_collection(store: DurableStore, key: str, data: Dict[str, Dict[str, Any]]) -> bool:
    """
    Write the collection, removing the key when it is empty.

    Returns:
        False if the backend rejected the write
    """
    try:
        if data:
            await store.set(key, json.dumps(data, default=str))
        else:
            await store.remove(key)
        return True
    except Exception as e:
        logger.warning("store_write_failed", key=key, error=str(e))
        return False
