"""Protocol for audit logger observability.

The audit logger cannot audit its own failures, so these events go to the
process log and are the only trace of a degraded audit sink.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AuditLoggerProbe(Protocol):
    """Domain probe for the batched audit logger."""

    def logger_started(self, flush_interval_seconds: float) -> None:
        """Record that the flush loop started."""
        ...

    def logger_stopped(self, remaining: int) -> None:
        """Record that the flush loop stopped."""
        ...

    def high_severity_event(
        self, event_type: str, severity: str, actor_id: str
    ) -> None:
        """Mirror an error or critical audit event to the process log."""
        ...

    def batch_flushed(self, count: int) -> None:
        """Record that a batch was persisted."""
        ...

    def flush_failed(
        self, error: str, consecutive_failures: int, discarded: int
    ) -> None:
        """Record that a batch write failed and its events were discarded."""
        ...

    def logger_disabled(self, consecutive_failures: int, discarded: int) -> None:
        """Record that the logger stopped flushing after repeated failures."""
        ...

    def logger_reset(self) -> None:
        """Record that a disabled logger was re-enabled."""
        ...

    def queue_overflow(self, dropped_total: int) -> None:
        """Record that events were dropped because the queue was full."""
        ...

    def with_context(self, context: ObservationContext) -> AuditLoggerProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAuditLoggerProbe:
    """Default implementation of AuditLoggerProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAuditLoggerProbe:
        """Create a new probe with observation context bound."""
        return DefaultAuditLoggerProbe(logger=self._logger, context=context)

    def logger_started(self, flush_interval_seconds: float) -> None:
        self._logger.info(
            "audit_logger_started",
            flush_interval_seconds=flush_interval_seconds,
            **self._get_context_kwargs(),
        )

    def logger_stopped(self, remaining: int) -> None:
        self._logger.info(
            "audit_logger_stopped",
            remaining=remaining,
            **self._get_context_kwargs(),
        )

    def high_severity_event(
        self, event_type: str, severity: str, actor_id: str
    ) -> None:
        self._logger.warning(
            "audit_high_severity_event",
            event_type=event_type,
            severity=severity,
            actor_id=actor_id,
            **self._get_context_kwargs(),
        )

    def batch_flushed(self, count: int) -> None:
        self._logger.debug(
            "audit_batch_flushed",
            count=count,
            **self._get_context_kwargs(),
        )

    def flush_failed(
        self, error: str, consecutive_failures: int, discarded: int
    ) -> None:
        self._logger.error(
            "audit_flush_failed",
            error=error,
            consecutive_failures=consecutive_failures,
            discarded=discarded,
            **self._get_context_kwargs(),
        )

    def logger_disabled(self, consecutive_failures: int, discarded: int) -> None:
        self._logger.critical(
            "audit_logger_disabled",
            consecutive_failures=consecutive_failures,
            discarded=discarded,
            **self._get_context_kwargs(),
        )

    def logger_reset(self) -> None:
        self._logger.info("audit_logger_reset", **self._get_context_kwargs())

    def queue_overflow(self, dropped_total: int) -> None:
        self._logger.warning(
            "audit_queue_overflow",
            dropped_total=dropped_total,
            **self._get_context_kwargs(),
        )
