"""Rate limit counter store port.

The in-memory SlidingWindowRateLimiter is the default implementation. A
multi-process deployment supplies a shared store with the same
sliding-window semantics.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from access.domain.value_objects import RateLimitDecision


@runtime_checkable
class RateLimitStore(Protocol):
    """Sliding-window hit counter keyed by caller."""

    def check(
        self, key: str, max_requests: int, window_seconds: float
    ) -> RateLimitDecision:
        """Count a hit for key if it fits in the window.

        A request is admitted iff fewer than max_requests hits fall in
        (now - window_seconds, now]. Admitted hits are recorded; refused
        ones are not.
        """
        ...

    def evict(self, horizon_seconds: float) -> int:
        """Drop buckets whose newest hit is older than now - horizon_seconds.

        Returns:
            Number of buckets dropped
        """
        ...
