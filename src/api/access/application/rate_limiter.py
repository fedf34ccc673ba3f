"""Sliding-window rate limiting.

SlidingWindowRateLimiter keeps one deque of hit timestamps per caller key
in process memory. RateLimiterService maps plan tiers to limits, owns the
store instance and periodically evicts idle buckets.
"""

from __future__ import annotations

import asyncio
import math
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping

from access.application.observability import (
    DefaultRateLimiterProbe,
    RateLimiterProbe,
)
from access.domain.value_objects import PlanTier, RateLimitDecision
from access.ports.rate_limit_store import RateLimitStore

DEFAULT_TIER_LIMITS: dict[str, int] = {
    PlanTier.STARTER: 10,
    PlanTier.GROWTH: 30,
    PlanTier.SCALE: 60,
    PlanTier.ENTERPRISE: 120,
    PlanTier.PAYG: 20,
}


class SlidingWindowRateLimiter:
    """In-memory RateLimitStore.

    Safe to share between the event loop and worker threads; every bucket
    operation holds the instance lock. Hit timestamps come from the
    injected clock, which must not go backwards.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._buckets: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def check(
        self, key: str, max_requests: int, window_seconds: float
    ) -> RateLimitDecision:
        """Admit and record a hit iff fewer than max_requests fall in the window."""
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        now = self._clock()
        window_start = now - window_seconds

        with self._lock:
            hits = self._buckets.get(key)
            if hits is None:
                hits = deque()
                self._buckets[key] = hits

            while hits and hits[0] <= window_start:
                hits.popleft()

            if len(hits) >= max_requests:
                reset_time = hits[0] + window_seconds
                return RateLimitDecision(
                    limited=True,
                    limit=max_requests,
                    remaining=0,
                    reset_time=reset_time,
                    retry_after=math.ceil(reset_time - now),
                )

            hits.append(now)
            return RateLimitDecision(
                limited=False,
                limit=max_requests,
                remaining=max_requests - len(hits),
                reset_time=hits[0] + window_seconds,
            )

    def evict(self, horizon_seconds: float) -> int:
        """Drop buckets with no hit newer than now - horizon_seconds."""
        cutoff = self._clock() - horizon_seconds
        with self._lock:
            stale = [
                key for key, hits in self._buckets.items() if not hits or hits[-1] < cutoff
            ]
            for key in stale:
                del self._buckets[key]
        return len(stale)


class RateLimitViolationTracker:
    """Decides when repeated rate-limit violations deserve an audit event.

    A caller is reported once it has more than ``threshold`` violations
    within ``window_seconds``, and then at most once per window.
    """

    def __init__(
        self,
        threshold: int,
        window_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._threshold = threshold
        self._window = window_seconds
        self._clock = clock
        self._violations: dict[str, deque[float]] = {}
        self._last_reported: dict[str, float] = {}
        self._lock = threading.Lock()

    def record(self, key: str) -> int | None:
        """Count a violation.

        Returns:
            The violation count in the window when it should be reported,
            otherwise None
        """
        now = self._clock()
        window_start = now - self._window
        with self._lock:
            hits = self._violations.setdefault(key, deque())
            while hits and hits[0] <= window_start:
                hits.popleft()
            hits.append(now)

            if len(hits) <= self._threshold:
                return None
            last = self._last_reported.get(key)
            if last is not None and last > window_start:
                return None
            self._last_reported[key] = now
            return len(hits)

    def evict(self) -> int:
        """Forget callers with no violation in the window."""
        window_start = self._clock() - self._window
        with self._lock:
            stale = [
                key for key, hits in self._violations.items() if not hits or hits[-1] <= window_start
            ]
            for key in stale:
                del self._violations[key]
                self._last_reported.pop(key, None)
        return len(stale)


class RateLimiterService:
    """Tier-aware rate limiting over a RateLimitStore.

    Create one per process and inject it; tests construct their own with a
    fake clock.
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        tier_limits: Mapping[str, int] | None = None,
        window_seconds: float = 60.0,
        eviction_interval_seconds: float = 300.0,
        eviction_grace_seconds: float = 3600.0,
        violation_tracker: RateLimitViolationTracker | None = None,
        probe: RateLimiterProbe | None = None,
    ) -> None:
        self._store = store or SlidingWindowRateLimiter()
        self._tier_limits = dict(tier_limits or DEFAULT_TIER_LIMITS)
        if not self._tier_limits:
            raise ValueError("tier_limits must define at least one tier")
        self._window = window_seconds
        self._eviction_interval = eviction_interval_seconds
        self._eviction_grace = eviction_grace_seconds
        self._violations = violation_tracker or RateLimitViolationTracker(threshold=10)
        self._probe = probe or DefaultRateLimiterProbe()
        self._eviction_task: asyncio.Task | None = None

    @property
    def window_seconds(self) -> float:
        return self._window

    def limit_for(self, tier: str | None) -> int:
        """Requests per window for a tier; unknown tiers get the strictest limit."""
        if tier is not None and tier in self._tier_limits:
            return self._tier_limits[tier]
        return min(self._tier_limits.values())

    def check(self, key: str, tier: str | None) -> RateLimitDecision:
        """Check and record one request for a caller on a plan tier."""
        limit = self.limit_for(tier)
        decision = self._store.check(key, limit, self._window)
        if decision.limited:
            self._probe.request_limited(
                key=key,
                tier=tier or "unknown",
                limit=limit,
                retry_after=decision.retry_after,
            )
        return decision

    def record_violation(self, key: str) -> int | None:
        """Count a denied request; returns the count when it should be audited."""
        return self._violations.record(key)

    def evict_idle(self) -> int:
        """Drop buckets idle for longer than the window plus grace period."""
        evicted = self._store.evict(self._window + self._eviction_grace)
        self._violations.evict()
        self._probe.buckets_evicted(evicted)
        return evicted

    async def start(self) -> None:
        """Start the periodic eviction task."""
        if self._eviction_task is not None:
            return
        self._eviction_task = asyncio.create_task(self._eviction_loop())
        self._probe.eviction_started(self._eviction_interval)

    async def stop(self) -> None:
        """Cancel the eviction task."""
        if self._eviction_task is None:
            return
        self._eviction_task.cancel()
        try:
            await self._eviction_task
        except asyncio.CancelledError:
            pass
        self._eviction_task = None
        self._probe.eviction_stopped()

    async def _eviction_loop(self) -> None:
        while True:
            await asyncio.sleep(self._eviction_interval)
            self.evict_idle()
