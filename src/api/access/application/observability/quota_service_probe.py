"""Protocol and structlog implementation for quota observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class QuotaServiceProbe(Protocol):
    """Domain probe for quota reads and usage increments."""

    def quota_not_found(self, owner_id: str) -> None:
        """Record that an owner has no quota window."""
        ...

    def period_rolled_over(self, owner_id: str) -> None:
        """Record that an ended billing period was reset."""
        ...

    def usage_incremented(self, owner_id: str, amount: int, request_id: str | None) -> None:
        """Record a successful usage increment."""
        ...

    def usage_increment_failed(self, owner_id: str, error: str) -> None:
        """Record that usage could not be incremented."""
        ...

    def with_context(self, context: ObservationContext) -> QuotaServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultQuotaServiceProbe:
    """Default implementation of QuotaServiceProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultQuotaServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultQuotaServiceProbe(logger=self._logger, context=context)

    def quota_not_found(self, owner_id: str) -> None:
        """Record that an owner has no quota window."""
        self._logger.warning(
            "quota_not_found", owner_id=owner_id, **self._get_context_kwargs()
        )

    def period_rolled_over(self, owner_id: str) -> None:
        """Record that an ended billing period was reset."""
        self._logger.info(
            "quota_period_rolled_over", owner_id=owner_id, **self._get_context_kwargs()
        )

    def usage_incremented(self, owner_id: str, amount: int, request_id: str | None) -> None:
        """Record a successful usage increment."""
        self._logger.debug(
            "quota_usage_incremented",
            owner_id=owner_id,
            amount=amount,
            request_id=request_id,
            **self._get_context_kwargs(),
        )

    def usage_increment_failed(self, owner_id: str, error: str) -> None:
        """Record that usage could not be incremented."""
        self._logger.error(
            "quota_usage_increment_failed",
            owner_id=owner_id,
            error=error,
            **self._get_context_kwargs(),
        )
