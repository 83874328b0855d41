"""Store connections used by the paste pool.

RedisStoreConnection talks to a real Redis through redis-py; the in-memory
variant backs tests and the ``memory`` backend with the same contract:
SET-with-expiry plus an atomic get-and-delete.
"""
from __future__ import annotations

import heapq
import threading
import time
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import redis


class StoreConnection(Protocol):
    def set_with_expiry(self, key: str, value: bytes, ttl_seconds: int) -> None: ...
    def get_and_delete(self, key: str) -> Optional[bytes]: ...
    def ping(self) -> bool: ...
    def close(self) -> None: ...


class RedisStoreConnection:
    """One dedicated Redis connection."""

    def __init__(self, url: str) -> None:
        self._pool = redis.ConnectionPool.from_url(url, max_connections=1)
        self._client = redis.Redis(connection_pool=self._pool, single_connection_client=True)

    def set_with_expiry(self, key: str, value: bytes, ttl_seconds: int) -> None:
        self._client.set(key, value, ex=ttl_seconds)

    def get_and_delete(self, key: str) -> Optional[bytes]:
        # GETDEL is a single command, so concurrent fetches cannot both see the value.
        return self._client.getdel(key)

    def ping(self) -> bool:
        return bool(self._client.ping())

    def close(self) -> None:
        self._client.close()
        self._pool.disconnect()


def redis_connection_factory(url: str) -> Callable[[], RedisStoreConnection]:
    def _factory() -> RedisStoreConnection:
        return RedisStoreConnection(url)

    return _factory


class InMemoryKeyValueStore:
    """Process-local key/value store.

    Expired entries are reclaimed on every write and fetch, oldest first.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._items: Dict[str, Tuple[bytes, float]] = {}
        self._expiries: List[Tuple[float, str]] = []
        self._lock = threading.Lock()

    def set_with_expiry(self, key: str, value: bytes, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        now = self._clock()
        expires_at = now + ttl_seconds
        with self._lock:
            self._reclaim_expired(now)
            self._items[key] = (bytes(value), expires_at)
            heapq.heappush(self._expiries, (expires_at, key))

    def get_and_delete(self, key: str) -> Optional[bytes]:
        now = self._clock()
        with self._lock:
            self._reclaim_expired(now)
            item = self._items.pop(key, None)
        if item is None:
            return None
        return item[0]

    @property
    def entries(self) -> int:
        """Entries held, including expired ones not yet reclaimed."""
        with self._lock:
            return len(self._items)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            item = self._items.get(key)
        return item is not None and self._clock() < item[1]

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for _, expires_at in self._items.values() if now < expires_at)

    def _reclaim_expired(self, now: float) -> None:
        # Heap entries left behind by overwritten or fetched keys are skipped.
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiries)
            item = self._items.get(key)
            if item is not None and item[1] == expires_at:
                del self._items[key]


class InMemoryStoreConnection:
    def __init__(self, store: InMemoryKeyValueStore) -> None:
        self._store = store
        self.closed = False

    def set_with_expiry(self, key: str, value: bytes, ttl_seconds: int) -> None:
        self._store.set_with_expiry(key, value, ttl_seconds)

    def get_and_delete(self, key: str) -> Optional[bytes]:
        return self._store.get_and_delete(key)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True


def memory_connection_factory(store: InMemoryKeyValueStore) -> Callable[[], InMemoryStoreConnection]:
    def _factory() -> InMemoryStoreConnection:
        return InMemoryStoreConnection(store)

    return _factory
