"""Single-flight execution of coroutines keyed by identity.

Concurrent callers asking for the same key while an operation is in flight
await that operation's outcome instead of starting their own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class SingleFlight(Generic[K, T]):
    """Deduplicates concurrent coroutine calls per key.

    Only usable from a single event loop. Each operation runs in a task owned
    by this object, and every caller awaits it through ``asyncio.shield``, so
    cancelling one caller abandons only that caller's wait. The in-flight
    entry is removed as soon as the operation finishes, so later calls start
    a fresh operation.
    """

    def __init__(self) -> None:
        self._in_flight: dict[K, asyncio.Task[T]] = {}

    def is_in_flight(self, key: K) -> bool:
        return key in self._in_flight

    async def run(self, key: K, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` unless one is already running for ``key``.

        All callers share the result or exception of the single operation.
        """
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._execute(key, operation)
            )
            task.add_done_callback(_retrieve_outcome)
            self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _execute(self, key: K, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        finally:
            self._in_flight.pop(key, None)


def _retrieve_outcome(task: asyncio.Task) -> None:
    # An operation whose callers all gave up must not log "never retrieved".
    if not task.cancelled():
        task.exception()
