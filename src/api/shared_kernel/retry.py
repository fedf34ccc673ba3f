"""Explicit bounded retry policy for calls to external services."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration with linear backoff.

    The first call is not a retry: a policy with ``max_retries=3`` makes at
    most four attempts, sleeping ``backoff_seconds * n`` before the n-th retry.
    Sleeps go through asyncio so task cancellation interrupts them.
    """

    max_retries: int = 3
    backoff_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff_for(self, retry_number: int) -> float:
        """Delay before the given retry (1-based)."""
        return self.backoff_seconds * retry_number

    def retrying(
        self,
        retry_on: Callable[[BaseException], bool],
        before_sleep: Callable[[RetryCallState], None] | None = None,
    ) -> AsyncRetrying:
        """Build a tenacity controller for ``async for attempt in ...`` loops.

        The last exception is re-raised once attempts are exhausted.
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(
                start=self.backoff_seconds, increment=self.backoff_seconds
            ),
            retry=retry_if_exception(retry_on),
            before_sleep=before_sleep,
            reraise=True,
        )
