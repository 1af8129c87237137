"""Tests for the session store backends.

``MemoryStore`` is exercised directly. ``RedisStore`` is exercised against a
stub client so that command mapping and error translation can be checked
without a server; see ``tests/integration`` for the real thing.
"""

import pytest
import redis

from quickvote.errors import StoreUnavailable
from quickvote.redis_client import DELETE_CHUNK_SIZE, RedisStore
from quickvote.store import MemoryStore


@pytest.mark.asyncio
class TestMemoryStore:
    """Tests for the in-memory backend."""

    async def test_get_set_delete(self):
        store = MemoryStore()

        assert await store.get("k") is None
        await store.set("k", "v")
        assert await store.get("k") == "v"
        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None

    async def test_set_if_absent(self):
        store = MemoryStore()

        assert await store.set_if_absent("voter:x", "a") is True
        assert await store.set_if_absent("voter:x", "b") is False
        assert await store.get("voter:x") == "a"

    async def test_increment_from_missing_and_existing(self):
        store = MemoryStore({"votes:a": "0"})

        assert await store.increment("votes:a") == 1
        assert await store.increment("votes:a") == 2
        assert await store.increment("votes:new") == 1
        assert await store.get("votes:a") == "2"

    async def test_list_keys_and_delete_many(self):
        store = MemoryStore({
            "voter:a@x.com": "a",
            "voter:b@x.com": "b",
            "votes:a": "1",
            "voting:current": "{}",
        })

        keys = await store.list_keys("voter:")
        assert keys == {"voter:a@x.com", "voter:b@x.com"}

        await store.delete_many(keys)
        await store.delete_many([])
        assert set(store.data) == {"votes:a", "voting:current"}

    async def test_ping(self):
        assert await MemoryStore().ping() is True


class StubRedis:
    """Records commands issued by RedisStore."""

    def __init__(self, keys=()):
        self.commands = []
        self.keys = list(keys)

    async def get(self, key):
        self.commands.append(("GET", key))
        return "value"

    async def set(self, key, value, nx=False):
        self.commands.append(("SET", key, value, nx))
        return None if nx and key == "taken" else True

    async def delete(self, *keys):
        self.commands.append(("DEL",) + keys)
        return len(keys)

    async def incr(self, key):
        self.commands.append(("INCR", key))
        return 7

    async def scan_iter(self, match=None, count=None):
        self.commands.append(("SCAN", match))
        for key in self.keys:
            yield key

    async def ping(self):
        return True


class FailingRedis:
    """Every command fails as if the connection dropped."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise redis.ConnectionError("Connection refused")
        return fail


@pytest.mark.asyncio
class TestRedisStore:
    """Tests for the Redis backend."""

    async def test_commands(self):
        client = StubRedis(keys=["voter:a", "voter:b"])
        store = RedisStore(client)

        assert await store.get("voting:current") == "value"
        await store.set("votes:a", "0")
        assert await store.set_if_absent("voter:x", "a") is True
        assert await store.set_if_absent("taken", "a") is False
        assert await store.increment("votes:a") == 7
        assert await store.list_keys("voter:") == {"voter:a", "voter:b"}

        assert client.commands == [
            ("GET", "voting:current"),
            ("SET", "votes:a", "0", False),
            ("SET", "voter:x", "a", True),
            ("SET", "taken", "a", True),
            ("INCR", "votes:a"),
            ("SCAN", "voter:*"),
        ]

    async def test_delete_many_chunks(self):
        client = StubRedis()
        store = RedisStore(client)
        keys = [f"voter:{i}" for i in range(DELETE_CHUNK_SIZE + 3)]

        await store.delete_many(keys)
        await store.delete_many([])

        deletes = [c for c in client.commands if c[0] == "DEL"]
        assert [len(c) - 1 for c in deletes] == [DELETE_CHUNK_SIZE, 3]

    @pytest.mark.parametrize("operation,args", [
        ("get", ("voting:current",)),
        ("set", ("voting:current", "{}")),
        ("set_if_absent", ("voter:x", "a")),
        ("delete", ("voting:current",)),
        ("delete_many", (["votes:a", "votes:b"],)),
        ("increment", ("votes:a",)),
        ("ping", ()),
    ])
    async def test_connection_errors_become_store_unavailable(self, operation, args):
        store = RedisStore(FailingRedis())

        with pytest.raises(StoreUnavailable):
            await getattr(store, operation)(*args)

    async def test_scan_error_becomes_store_unavailable(self):
        class FailingScan(StubRedis):
            async def scan_iter(self, match=None, count=None):
                raise redis.TimeoutError("Timeout reading from socket")
                yield

        store = RedisStore(FailingScan())

        with pytest.raises(StoreUnavailable):
            await store.list_keys("voter:")
