"""Pytest fixtures shared by the QuickVote test suite.

Unit and API tests run against ``MemoryStore``; nothing here needs a running
Redis. Redis-backed tests live in ``tests/integration``.
"""

from typing import AsyncGenerator, Dict, List

import httpx
import pytest

from quickvote.config import settings
from quickvote.main import app, get_manager
from quickvote.store import MemoryStore
from quickvote.voting import VotingSessionManager


@pytest.fixture
def memory_store() -> MemoryStore:
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def manager(memory_store: MemoryStore) -> VotingSessionManager:
    """Session manager over the in-memory store."""
    return VotingSessionManager(memory_store)


@pytest.fixture
def fruit_candidates() -> List[Dict[str, str]]:
    """Candidates of the "Best Fruit" voting."""
    return [
        {"id": "a", "name": "Apple"},
        {"id": "b", "name": "Banana"},
    ]


@pytest.fixture
async def active_manager(
    manager: VotingSessionManager,
    fruit_candidates: List[Dict[str, str]]
) -> VotingSessionManager:
    """Manager with a started "Best Fruit" voting."""
    await manager.create_session("Best Fruit", fruit_candidates)
    await manager.start_session()
    return manager


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    """Headers accepted by admin routes."""
    return {"X-Admin-Password": settings.ADMIN_PASSWORD}


@pytest.fixture
async def api_client(manager: VotingSessionManager) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the ASGI app, using the in-memory manager.

    The app lifespan is not run, so no store connection is attempted.
    """
    app.dependency_overrides[get_manager] = lambda: manager
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://quickvote.test") as client:
        yield client
    app.dependency_overrides.clear()
