"""Protocol for audit query observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AuditQueryProbe(Protocol):
    """Domain probe for read-side audit operations."""

    def events_queried(self, actor_id: str | None, count: int, total: int) -> None:
        """Record that a page of audit events was read."""
        ...

    def report_generated(self, actor_id: str, total_events: int) -> None:
        """Record that an audit report was generated."""
        ...

    def with_context(self, context: ObservationContext) -> AuditQueryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAuditQueryProbe:
    """Default implementation of AuditQueryProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAuditQueryProbe:
        """Create a new probe with observation context bound."""
        return DefaultAuditQueryProbe(logger=self._logger, context=context)

    def events_queried(self, actor_id: str | None, count: int, total: int) -> None:
        self._logger.info(
            "audit_events_queried",
            actor_id=actor_id,
            count=count,
            total=total,
            **self._get_context_kwargs(),
        )

    def report_generated(self, actor_id: str, total_events: int) -> None:
        self._logger.info(
            "audit_report_generated",
            actor_id=actor_id,
            total_events=total_events,
            **self._get_context_kwargs(),
        )
