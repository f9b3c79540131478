"""Keyed stores for per-user and per-order state.

Sessions, auth sessions and order correlations all live behind the same
small `get/set/delete` interface so a shared backend can replace the
in-memory one without touching callers.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class KeyedStore(ABC, Generic[K, V]):
    """Async key/value store."""

    @abstractmethod
    async def get(self, key: K) -> Optional[V]:
        """Return the value for key, or None."""

    @abstractmethod
    async def set(self, key: K, value: V) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: K) -> None:
        """Remove a key. Missing keys are ignored."""


class MemoryKeyedStore(KeyedStore[K, V]):
    """Process-local store guarded by an asyncio lock.

    Contents are lost on restart.
    """

    def __init__(self) -> None:
        self._data: dict[K, V] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: K) -> Optional[V]:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: K, value: V) -> None:
        async with self._lock:
            self._data[key] = value

    async def delete(self, key: K) -> None:
        async with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
