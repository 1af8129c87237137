"""Session store contract and the in-process backend.

The voting core talks to its key-value store only through ``SessionStore``.
``RedisStore`` (see ``redis_client``) is the production backend;
``MemoryStore`` serves local development and the test suite.
"""

import asyncio
import logging
from typing import Dict, Iterable, Optional, Protocol, Set, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Narrow key-value interface used by the voting core.

    Every method may raise ``StoreUnavailable``. Implementations never retry.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def set_if_absent(self, key: str, value: str) -> bool: ...

    async def delete(self, key: str) -> None: ...

    async def delete_many(self, keys: Iterable[str]) -> None: ...

    async def increment(self, key: str) -> int: ...

    async def list_keys(self, prefix: str) -> Set[str]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class MemoryStore:
    """Dictionary-backed store for a single process.

    Each operation yields to the event loop once before touching the data,
    standing in for the network round trip, and then completes without
    further suspension, so every single-key operation is atomic.
    """

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0)
        self.data[key] = str(value)

    async def set_if_absent(self, key: str, value: str) -> bool:
        await asyncio.sleep(0)
        if key in self.data:
            return False
        self.data[key] = str(value)
        return True

    async def delete(self, key: str) -> None:
        await asyncio.sleep(0)
        self.data.pop(key, None)

    async def delete_many(self, keys: Iterable[str]) -> None:
        await asyncio.sleep(0)
        for key in keys:
            self.data.pop(key, None)

    async def increment(self, key: str) -> int:
        """Increment the integer at ``key``, treating absence as 0."""
        await asyncio.sleep(0)
        value = int(self.data.get(key, '0')) + 1
        self.data[key] = str(value)
        return value

    async def list_keys(self, prefix: str) -> Set[str]:
        await asyncio.sleep(0)
        return {key for key in self.data if key.startswith(prefix)}

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        logger.info("Memory store closed")
