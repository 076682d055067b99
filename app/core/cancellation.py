"""Cooperative cancellation for orchestration runs."""

import asyncio

from app.core.errors import EditCancelledError


class CancellationToken:
    """Set by the caller; observed by the edit loop at each suspension point.

    An in-flight completion call is allowed to finish, but its result is
    discarded once the token is set.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise EditCancelledError(f"Edit cancelled before {stage}")
