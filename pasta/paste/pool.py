"""Bounded connection pool with scoped acquisition.

Connections are created lazily through a factory, handed to one caller at a
time and returned when the caller's block exits. Waiting for a free slot is
bounded by ``timeout``; callers get PoolTimeout instead of blocking forever.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, List, Protocol, TypeVar

logger = logging.getLogger(__name__)


class Closeable(Protocol):
    def close(self) -> None: ...


C = TypeVar("C", bound=Closeable)


class PoolTimeout(Exception):
    pass


class PoolClosed(Exception):
    pass


class ConnectionPool(Generic[C]):
    def __init__(self, factory: Callable[[], C], max_size: int = 10, timeout: float = 30.0) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if timeout < 0:
            raise ValueError("timeout must not be negative")
        self._factory = factory
        self.max_size = max_size
        self.timeout = timeout
        self._idle: List[C] = []
        self._size = 0
        self._closed = False
        self._cond = threading.Condition()

    @property
    def size(self) -> int:
        """Connections currently open, idle or checked out."""
        with self._cond:
            return self._size

    @property
    def idle(self) -> int:
        with self._cond:
            return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def acquire(self) -> Iterator[C]:
        conn = self._checkout()
        try:
            yield conn
        except BaseException:
            # Connection state is unknown after a failed command.
            self._discard(conn)
            raise
        else:
            self._checkin(conn)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            idle, self._idle = self._idle, []
            self._size -= len(idle)
            self._cond.notify_all()
        for conn in idle:
            self._close_quietly(conn)

    # --- Internal helpers ---
    def _checkout(self) -> C:
        deadline = time.monotonic() + self.timeout
        with self._cond:
            while True:
                if self._closed:
                    raise PoolClosed("connection pool is closed")
                if self._idle:
                    return self._idle.pop()
                if self._size < self.max_size:
                    self._size += 1
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise PoolTimeout(f"no connection available within {self.timeout}s")
                self._cond.wait(remaining)
        try:
            return self._factory()
        except BaseException:
            with self._cond:
                self._size -= 1
                self._cond.notify()
            raise

    def _checkin(self, conn: C) -> None:
        with self._cond:
            if not self._closed:
                self._idle.append(conn)
                self._cond.notify()
                return
            self._size -= 1
        self._close_quietly(conn)

    def _discard(self, conn: C) -> None:
        with self._cond:
            self._size -= 1
            self._cond.notify()
        self._close_quietly(conn)

    @staticmethod
    def _close_quietly(conn: C) -> None:
        try:
            conn.close()
        except Exception as exc:
            logger.warning(f"Failed to close pooled connection: {exc}")
