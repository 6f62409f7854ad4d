"""
In-Memory Store
===============
Process-local DurableStore for development and testing.
"""

from typing import Dict, List, Optional

from .base import DurableStore


class InMemoryStore(DurableStore):
    """
    Dictionary-backed store.

    For development and testing only. Use RedisStore in production.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def all_keys(self) -> List[str]:
        return list(self._data.keys())
