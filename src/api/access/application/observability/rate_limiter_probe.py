"""Protocol and structlog implementation for rate limiter observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class RateLimiterProbe(Protocol):
    """Domain probe for rate limiting."""

    def request_limited(self, key: str, tier: str, limit: int, retry_after: int) -> None:
        ...

    def buckets_evicted(self, evicted: int) -> None:
        ...

    def eviction_started(self, interval_seconds: float) -> None:
        ...

    def eviction_stopped(self) -> None:
        ...

    def with_context(self, context: ObservationContext) -> RateLimiterProbe:
        ...


class DefaultRateLimiterProbe:
    """Default implementation of RateLimiterProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultRateLimiterProbe:
        return DefaultRateLimiterProbe(logger=self._logger, context=context)

    def request_limited(self, key: str, tier: str, limit: int, retry_after: int) -> None:
        self._logger.info(
            "rate_limit_exceeded",
            key=key,
            tier=tier,
            limit=limit,
            retry_after=retry_after,
            **self._get_context_kwargs(),
        )

    def buckets_evicted(self, evicted: int) -> None:
        if evicted:
            self._logger.debug("rate_limit_buckets_evicted", evicted=evicted)

    def eviction_started(self, interval_seconds: float) -> None:
        self._logger.info("rate_limit_eviction_started", interval_seconds=interval_seconds)

    def eviction_stopped(self) -> None:
        self._logger.info("rate_limit_eviction_stopped")
