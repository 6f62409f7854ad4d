"""
Durable Store Interface
=======================
String-valued key/value persistence that survives process restarts.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class StoreError(Exception):
    """Raised by a backend when the underlying storage is unavailable."""


class DurableStore(ABC):
    """
    Async key/value store.

    Implementations must be safe to call from concurrent tasks. Callers
    re-read before every write and never hold a snapshot across calls.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def all_keys(self) -> List[str]:
        ...
