import re
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, ResponseError

from pasta.paste.errors import ConnectionTimeout, DecodeError, NotFound, StoreError
from pasta.paste.keys import KeyGenerator
from pasta.paste.pool import ConnectionPool
from pasta.paste.service import DEFAULT_TTL_SECONDS, PasteService
from pasta.paste.store import InMemoryKeyValueStore, memory_connection_factory


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _service(store=None, **kwargs):
    if store is None:
        store = InMemoryKeyValueStore()
    pool = ConnectionPool(memory_connection_factory(store), max_size=kwargs.pop("max_size", 4), timeout=0.5)
    return PasteService(pool, **kwargs), store


def test_hello_world_scenario():
    svc, _ = _service()
    key = svc.create("hello world")
    assert re.match(r"^[A-Za-z0-9]{8}$", key)
    assert svc.fetch_text(key) == "hello world"
    with pytest.raises(NotFound) as exc_info:
        svc.fetch_text(key)
    assert exc_info.value.key == key


@pytest.mark.parametrize("content", ["", "x", "multi\nline\ttext", "ünïcødé ✓", "a" * 100_000])
def test_round_trip(content):
    svc, _ = _service()
    assert svc.fetch_text(svc.create(content)) == content


def test_bytes_content_round_trips_unchanged():
    svc, _ = _service()
    key = svc.create(b"raw bytes")
    assert svc.fetch(key) == b"raw bytes"


def test_every_later_fetch_is_not_found():
    svc, _ = _service()
    key = svc.create("once")
    assert svc.fetch(key) == b"once"
    for _ in range(3):
        with pytest.raises(NotFound):
            svc.fetch(key)


def test_unknown_key_is_not_found():
    svc, _ = _service()
    with pytest.raises(NotFound) as exc_info:
        svc.fetch("nosuchky")
    assert exc_info.value.key == "nosuchky"


def test_content_is_stored_under_namespace_with_ttl():
    store = InMemoryKeyValueStore()
    svc, _ = _service(store, key_generator=KeyGenerator(random_bytes=lambda n: bytes(range(n))))
    assert svc.ttl_seconds == DEFAULT_TTL_SECONDS == 1800
    key = svc.create("namespaced")
    assert key == "abcdefgh"
    assert "pasta:abcdefgh" in store
    assert "abcdefgh" not in store


def test_custom_namespace():
    store = InMemoryKeyValueStore()
    svc, _ = _service(store, namespace="other")
    key = svc.create("x")
    assert f"other:{key}" in store
    assert svc.store_key(key) == f"other:{key}"


def test_unfetched_paste_expires_after_ttl():
    clock = _Clock()
    svc, store = _service(InMemoryKeyValueStore(clock=clock), ttl_seconds=2)
    key = svc.create("short lived")
    clock.now += 1
    assert f"pasta:{key}" in store
    clock.now += 1
    with pytest.raises(NotFound):
        svc.fetch(key)


def test_fetch_before_expiry_succeeds():
    clock = _Clock()
    svc, _ = _service(InMemoryKeyValueStore(clock=clock))
    key = svc.create("still here")
    clock.now += DEFAULT_TTL_SECONDS - 1
    assert svc.fetch_text(key) == "still here"


def test_colliding_key_overwrites_existing_paste():
    svc, _ = _service(key_generator=KeyGenerator(random_bytes=lambda n: bytes(range(n))))
    first = svc.create("first")
    second = svc.create("second")
    assert first == second
    assert svc.fetch_text(first) == "second"


def test_concurrent_fetches_deliver_exactly_once():
    workers = 16
    svc, _ = _service(max_size=workers)
    key = svc.create("race")
    barrier = threading.Barrier(workers)

    def _fetch():
        barrier.wait()
        try:
            return svc.fetch(key)
        except NotFound:
            return None

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: _fetch(), range(workers)))

    assert results.count(b"race") == 1
    assert results.count(None) == workers - 1


def test_invalid_utf8_is_decode_error_and_consumed():
    svc, store = _service()
    store.set_with_expiry("pasta:badbytes", b"\xff\xfe\xfd", 60)
    with pytest.raises(DecodeError):
        svc.fetch_text("badbytes")
    with pytest.raises(NotFound):
        svc.fetch("badbytes")


class _FailingConnection:
    def __init__(self) -> None:
        self.closed = False

    def set_with_expiry(self, key, value, ttl_seconds):
        raise ResponseError("OOM command not allowed")

    def get_and_delete(self, key):
        raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")

    def ping(self):
        raise RedisConnectionError("down")

    def close(self):
        self.closed = True


def test_store_failure_on_create_is_store_error():
    conns = []

    def _factory():
        conns.append(_FailingConnection())
        return conns[-1]

    svc = PasteService(ConnectionPool(_factory, max_size=1, timeout=0.1))
    with pytest.raises(StoreError) as exc_info:
        svc.create("x")
    assert isinstance(exc_info.value.cause, ResponseError)
    # The failed connection is dropped rather than reused.
    assert conns[0].closed
    assert svc.pool.size == 0


def test_store_failure_on_fetch_is_store_error():
    svc = PasteService(ConnectionPool(_FailingConnection, max_size=1, timeout=0.1))
    with pytest.raises(StoreError):
        svc.fetch("whatever")


def test_unreachable_store_is_store_error():
    def _factory():
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    svc = PasteService(ConnectionPool(_factory, max_size=1, timeout=0.1))
    with pytest.raises(StoreError):
        svc.create("x")


def test_closed_pool_is_store_error():
    svc, _ = _service()
    svc.pool.close()
    with pytest.raises(StoreError):
        svc.fetch("abc")


class _StalledConnection:
    def __init__(self, entered: threading.Semaphore, release: threading.Event) -> None:
        self._entered = entered
        self._release = release

    def set_with_expiry(self, key, value, ttl_seconds):
        self._entered.release()
        self._release.wait(5)

    def get_and_delete(self, key):
        self._entered.release()
        self._release.wait(5)
        return None

    def ping(self):
        return True

    def close(self):
        pass


def test_pool_exhaustion_fails_with_connection_timeout():
    size = 2
    entered = threading.Semaphore(0)
    release = threading.Event()
    pool = ConnectionPool(lambda: _StalledConnection(entered, release), max_size=size, timeout=0.1)
    svc = PasteService(pool)

    with ThreadPoolExecutor(max_workers=size) as executor:
        stalled = [executor.submit(svc.fetch, f"key{i}") for i in range(size)]
        for _ in range(size):
            assert entered.acquire(timeout=5)
        try:
            with pytest.raises(ConnectionTimeout):
                svc.create("one too many")
        finally:
            release.set()
        for fut in stalled:
            with pytest.raises(NotFound):
                fut.result(timeout=5)


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        _service(ttl_seconds=0)


def test_ping_through_pool():
    svc, _ = _service()
    assert svc.ping() is True
    failing = PasteService(ConnectionPool(_FailingConnection, max_size=1, timeout=0.1))
    with pytest.raises(StoreError):
        failing.ping()
