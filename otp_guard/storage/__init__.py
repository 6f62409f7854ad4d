"""
Durable Storage
===============
Key/value persistence for the dedupe cache and the offline queue.
"""

from .base import DurableStore, StoreError
from .memory import InMemoryStore
from .redis_store import RedisStore
from .locks import KeyedLock
from .maintenance import export_namespace, purge_namespace

__all__ = [
    # Interface
    "DurableStore",
    "StoreError",
    # Backends
    "InMemoryStore",
    "RedisStore",
    # Concurrency
    "KeyedLock",
    # Tooling
    "export_namespace",
    "purge_namespace",
]
