"""Per-document serialisation of load-modify-save sequences."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class DocumentLockRegistry:
    """One asyncio.Lock per document id, created on first use.

    Runs for different documents proceed concurrently; runs for the same
    document are serialised so a later save never drops an earlier update.
    A lock taken through ``lock()`` is dropped once its last holder or
    waiter leaves, so the registry only holds documents in use.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def get(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    @asynccontextmanager
    async def lock(self, document_id: str) -> AsyncIterator[None]:
        lock = self.get(document_id)
        self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[document_id] - 1
            if remaining:
                self._users[document_id] = remaining
            else:
                del self._users[document_id]
                self._locks.pop(document_id, None)

    def __len__(self) -> int:
        return len(self._locks)
