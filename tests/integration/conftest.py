"""Pytest fixtures for Redis integration tests.

Point ``REDIS_HOST`` / ``REDIS_PORT`` at a disposable instance. Tests use
``REDIS_TEST_DB`` (default 15) and only touch QuickVote keys.
"""

import os
from typing import AsyncGenerator, Generator

import pytest
import redis

from quickvote.config import Settings
from quickvote.redis_client import RedisStore
from quickvote.voting import VotingSessionManager

QUICKVOTE_PATTERNS = ("voting:*", "votes:*", "voter:*", "demo:*")


@pytest.fixture(scope="session")
def redis_settings() -> Settings:
    """Settings pointing at the test database."""
    return Settings(
        REDIS_HOST=os.getenv("REDIS_HOST", "localhost"),
        REDIS_PORT=int(os.getenv("REDIS_PORT", "6379")),
        REDIS_DB=int(os.getenv("REDIS_TEST_DB", "15")),
        REDIS_PASSWORD=os.getenv("REDIS_PASSWORD") or None,
        REDIS_SOCKET_TIMEOUT=2.0,
    )


@pytest.fixture(scope="session")
def redis_client(redis_settings: Settings) -> Generator[redis.Redis, None, None]:
    """Redis client for direct assertions and cleanup.

    Skips the integration tests when Redis is not available.
    """
    client = redis.Redis.from_url(redis_settings.redis_url, decode_responses=True)

    try:
        client.ping()
    except redis.ConnectionError:
        pytest.skip("Redis not available")

    yield client

    client.close()


@pytest.fixture
def clear_redis(redis_client: redis.Redis):
    """Remove QuickVote keys before and after each test."""
    def _clear():
        for pattern in QUICKVOTE_PATTERNS:
            keys = list(redis_client.scan_iter(match=pattern))
            if keys:
                redis_client.delete(*keys)

    _clear()
    yield
    _clear()


@pytest.fixture
async def redis_store(redis_settings: Settings, clear_redis) -> AsyncGenerator[RedisStore, None]:
    """RedisStore on the test database."""
    store = RedisStore.from_settings(redis_settings)
    yield store
    await store.close()


@pytest.fixture
def redis_manager(redis_store: RedisStore) -> VotingSessionManager:
    """Session manager backed by Redis."""
    return VotingSessionManager(redis_store)


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring a running Redis"
    )
