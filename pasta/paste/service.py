"""Paste lifecycle: create-with-expiry and fetch-and-delete.

Each operation checks out one pooled store connection, issues exactly one
store command and returns the connection. Failures surface as PasteError
subclasses; nothing is retried.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from redis.exceptions import RedisError

from pasta.paste.errors import ConnectionTimeout, DecodeError, NotFound, StoreError
from pasta.paste.keys import KeyGenerator
from pasta.paste.pool import ConnectionPool, PoolClosed, PoolTimeout
from pasta.paste.store import StoreConnection

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 30
DEFAULT_NAMESPACE = "pasta"


class PasteService:
    def __init__(
        self,
        pool: ConnectionPool[StoreConnection],
        key_generator: Optional[KeyGenerator] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.pool = pool
        self.key_generator = key_generator or KeyGenerator()
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace

    def store_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def create(self, content: Union[bytes, str]) -> str:
        """Store content under a fresh key and return the bare key.

        No existence check is made: a generated key that collides with a live
        paste overwrites it.
        """
        if isinstance(content, str):
            content = content.encode("utf-8")
        with self._connection("create") as conn:
            key = self.key_generator.generate()
            conn.set_with_expiry(self.store_key(key), content, self.ttl_seconds)
        logger.debug(f"Created paste '{key}' ({len(content)} bytes, ttl={self.ttl_seconds}s)")
        return key

    def fetch(self, key: str) -> bytes:
        """Return the stored content and remove it; NotFound if absent or expired."""
        with self._connection("fetch") as conn:
            value = conn.get_and_delete(self.store_key(key))
        if value is None:
            logger.debug(f"Paste '{key}' not found")
            raise NotFound(key)
        return value

    def fetch_text(self, key: str) -> str:
        value = self.fetch(key)
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.error(f"Paste '{key}' is not valid UTF-8: {exc}")
            raise DecodeError(exc) from exc

    def ping(self) -> bool:
        with self._connection("ping") as conn:
            return conn.ping()

    @contextmanager
    def _connection(self, op: str) -> Iterator[StoreConnection]:
        try:
            with self.pool.acquire() as conn:
                yield conn
        except PoolTimeout as exc:
            logger.error(f"Store connection timeout during {op}: {exc}")
            raise ConnectionTimeout() from exc
        except PoolClosed as exc:
            logger.error(f"Store pool closed during {op}")
            raise StoreError(exc) from exc
        except RedisError as exc:
            logger.error(f"Store error during {op}: {exc}")
            raise StoreError(exc) from exc
