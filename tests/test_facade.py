"""
Tests for the cache facade

These tests verify the scalar operations against the in-process store:
- get/put/forever/forget/has/ttl
- pull (read and delete) and add (conditional write)
- Failure values for invalid keys, unencodable values and store errors

Run with: python -m pytest tests/test_facade.py -v
"""

import asyncio

import pytest
from redis.exceptions import ResponseError

from semcache.cache.facade import Cache
from semcache.cache.memory import MemoryStore
from semcache.connection.events import ConnectionEvent, ConnectionState

INVALID_KEYS = [None, 42, b"bytes", ["k"]]


@pytest.mark.asyncio
class TestPutGet:
    """Test put() and get()."""

    async def test_put_then_get(self, cache: Cache):
        assert await cache.put("test", "123456") is True
        assert await cache.get("test") == "123456"

    async def test_structured_value(self, cache: Cache):
        value = {"name": "alice", "tags": ["a", "b"], "age": 30, "active": True}
        await cache.put("user:1", value)
        assert await cache.get("user:1") == value

    async def test_value_is_stored_as_json(self, cache: Cache, store: MemoryStore):
        await cache.put("test", "123456")
        assert await store.get("test") == '"123456"'

    async def test_get_never_set_key(self, cache: Cache):
        assert await cache.get("missing") is None

    async def test_get_undecodable_payload(self, cache: Cache, store: MemoryStore):
        await store.set("raw", "not json")
        assert await cache.get("raw") is None

    async def test_put_with_ttl(self, cache: Cache, store: MemoryStore):
        assert await cache.put("test10", "123456", 10) is True
        assert 0 < await store.ttl("test10") <= 10

    async def test_put_without_ttl_has_no_expiry(self, cache: Cache):
        await cache.put("test", "v")
        assert await cache.ttl("test") == -1

    async def test_put_unencodable_value(self, cache: Cache):
        assert await cache.put("bad", object()) is False
        assert await cache.has("bad") is False

    async def test_put_invalid_ttl_is_store_failure(self, cache: Cache):
        assert await cache.put("zero", "v", 0) is False

    @pytest.mark.parametrize("key", INVALID_KEYS)
    async def test_invalid_key(self, cache: Cache, store: MemoryStore, key):
        assert await cache.put(key, "123456") is False
        assert await cache.get(key) is None
        assert store.size() == 0

    @pytest.mark.slow
    async def test_entry_expires(self, cache: Cache):
        assert await cache.put("test10", "123456", 1) is True
        assert await cache.has("test10") is True

        await asyncio.sleep(1.1)

        assert await cache.has("test10") is False


@pytest.mark.asyncio
class TestForeverForget:
    """Test forever(), forget() and ttl()."""

    async def test_forever_has_no_expiration(self, cache: Cache):
        assert await cache.forever("testForever", "Permanent") is True
        assert await cache.get("testForever") == "Permanent"
        assert await cache.ttl("testForever") == -1

    async def test_forever_replaces_expiring_entry(self, cache: Cache):
        await cache.put("k", "old", 30)
        await cache.forever("k", "new")
        assert await cache.ttl("k") == -1

    async def test_forget_removes_key(self, cache: Cache):
        await cache.forever("testForever", "Permanent")

        result = await cache.forget("testForever")

        assert result is None
        assert await cache.has("testForever") is False

    async def test_forget_runs_in_background(self, cache: Cache):
        await cache.put("k", "v")

        cache.forget("k")
        await cache.drain()

        assert await cache.has("k") is False

    async def test_forget_invalid_key(self, cache: Cache):
        assert cache.forget(None) is None
        assert cache.tasks.pending == 0

    async def test_ttl_of_missing_key(self, cache: Cache):
        assert await cache.ttl("missing") == -2

    async def test_ttl_invalid_key(self, cache: Cache):
        assert await cache.ttl(None) is None


@pytest.mark.asyncio
class TestHas:
    """Test has()."""

    async def test_has_existing(self, cache: Cache):
        await cache.put("test", "123456")
        assert await cache.has("test") is True

    async def test_has_never_set(self, cache: Cache):
        assert await cache.has("missing") is False

    async def test_has_invalid_key(self, cache: Cache):
        assert await cache.has(None) is False


@pytest.mark.asyncio
class TestPull:
    """Test pull()."""

    async def test_pull_returns_and_deletes(self, cache: Cache):
        await cache.put("tempNew", "newValue")

        assert await cache.pull("tempNew") == "newValue"
        assert await cache.has("tempNew") is False

    async def test_pull_absent_key(self, cache: Cache, store: MemoryStore):
        await cache.put("other", "v")

        assert await cache.pull("missing") is None
        assert store.size() == 1

    async def test_pull_falsy_value(self, cache: Cache):
        await cache.put("zero", 0)
        assert await cache.pull("zero") == 0
        assert await cache.has("zero") is False

    async def test_pull_invalid_key(self, cache: Cache):
        assert await cache.pull(None) is None

    async def test_pull_without_getdel_support(self, cache: Cache, store: MemoryStore, monkeypatch):
        async def no_getdel(name):
            raise ResponseError("unknown command 'GETDEL'")

        monkeypatch.setattr(store, "getdel", no_getdel)
        await cache.put("old", "value")

        assert await cache.pull("old") == "value"
        await cache.drain()
        assert await cache.has("old") is False

    async def test_pull_other_response_error(self, cache: Cache, store: MemoryStore):
        await store.hset("h", mapping={"f": "v"})
        assert await cache.pull("h") is None
        assert await store.exists("h") == 1


@pytest.mark.asyncio
class TestAdd:
    """Test add()."""

    async def test_add_existing_key(self, cache: Cache):
        await cache.put("test", "123456")

        assert await cache.add("test", "newValue", 10) is False
        assert await cache.get("test") == "123456"
        assert await cache.ttl("test") == -1

    async def test_add_absent_key(self, cache: Cache):
        assert await cache.add("tempNew", "newValue") is True
        assert await cache.get("tempNew") == "newValue"

    async def test_add_with_ttl(self, cache: Cache):
        assert await cache.add("tempNew", "newValue", 10) is True
        assert 0 < await cache.ttl("tempNew") <= 10

    async def test_concurrent_add_single_winner(self, cache: Cache):
        results = await asyncio.gather(*(cache.add("race", i) for i in range(10)))

        assert results.count(True) == 1
        assert await cache.get("race") == results.index(True)

    async def test_add_unencodable(self, cache: Cache):
        assert await cache.add("bad", object()) is False

    async def test_add_invalid_key(self, cache: Cache):
        assert await cache.add(None, "v") is False


@pytest.mark.asyncio
class TestStoreFailures:
    """Test failure values when the store is unreachable."""

    async def test_every_operation_fails_softly(self, broken_cache: Cache):
        assert await broken_cache.get("k") is None
        assert await broken_cache.put("k", "v") is False
        assert await broken_cache.forever("k", "v") is False
        assert await broken_cache.has("k") is False
        assert await broken_cache.pull("k") is None
        assert await broken_cache.add("k", "v") is False
        assert await broken_cache.ttl("k") is None
        assert await broken_cache.multiget("s", ["f"]) == []
        assert await broken_cache.multiput("s", {"f": "v"}) is False

    async def test_forget_failure_is_dropped(self, broken_cache: Cache):
        assert await broken_cache.forget("k") is None
        assert broken_cache.tasks.dropped == 1

    async def test_failures_reported_to_observer(self, broken_cache: Cache, observer):
        observer.events.clear()

        await broken_cache.get("k")

        assert observer.names == ["error"]
        assert observer.state == ConnectionState.ERROR

    async def test_run_reports_unreachable_store(self, broken_cache: Cache, observer):
        assert observer.events[0][0] == ConnectionEvent.ERROR
        assert broken_cache.running is True


@pytest.mark.asyncio
class TestLifecycle:
    """Test run()/close() and use before run()."""

    async def test_operations_before_run(self):
        cache = Cache(client=MemoryStore(), environ={})

        assert await cache.put("k", "v") is False
        assert await cache.get("k") is None
        assert await cache.has("k") is False

    async def test_forget_before_run_is_dropped(self):
        cache = Cache(client=MemoryStore(), environ={})
        await cache.forget("k")
        assert cache.tasks.dropped == 1

    async def test_context_manager(self, observer):
        async with Cache(client=MemoryStore(), observer=observer, environ={}) as cache:
            assert cache.running is True
            assert await cache.put("k", "v") is True

        assert cache.running is False
        assert observer.names == ["connect", "ready"]
        assert observer.state == ConnectionState.CLOSED

    async def test_run_twice_keeps_client(self, cache: Cache, store: MemoryStore):
        await cache.run()
        assert cache.client is store

    async def test_close_drains_background_work(self, store: MemoryStore):
        cache = Cache(client=store, environ={})
        await cache.run()
        await cache.put("k", "v")

        cache.forget("k")
        await cache.close()

        assert await store.exists("k") == 0
