"""One-shot timers that refresh OAuth tokens ahead of expiry.

Timers only pre-warm tokens. The vault re-checks expiry on every read, so
a lost or duplicate firing is harmless.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from vault.application.observability import (
    DefaultRefreshSchedulerProbe,
    RefreshSchedulerProbe,
)


class RefreshScheduler:
    """Holds at most one pending timer per key.

    Must be used from the event loop that runs the callbacks.
    """

    def __init__(self, probe: RefreshSchedulerProbe | None = None) -> None:
        self._probe = probe or DefaultRefreshSchedulerProbe()
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._handles)

    def is_armed(self, key: str) -> bool:
        return key in self._handles

    def schedule(
        self,
        key: str,
        delay_seconds: float,
        callback: Callable[[], Awaitable[object]],
    ) -> bool:
        """Arm (or re-arm) the timer for key.

        Returns:
            False if the delay is not positive; nothing is armed then
        """
        self.cancel(key)
        if delay_seconds <= 0:
            return False

        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(
            delay_seconds, self._fire, key, callback
        )
        self._probe.refresh_armed(key, delay_seconds)
        return True

    def cancel(self, key: str) -> None:
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    async def shutdown(self) -> None:
        """Cancel every timer and any refresh already running."""
        cancelled = len(self._handles)
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._probe.scheduler_shutdown(cancelled)

    def _fire(self, key: str, callback: Callable[[], Awaitable[object]]) -> None:
        self._handles.pop(key, None)
        task = asyncio.get_running_loop().create_task(self._run(key, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, key: str, callback: Callable[[], Awaitable[object]]) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._probe.scheduled_refresh_failed(key, reason=repr(e))
