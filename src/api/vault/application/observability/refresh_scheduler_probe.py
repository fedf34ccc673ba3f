"""Protocol for refresh scheduler observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class RefreshSchedulerProbe(Protocol):
    """Domain probe for the proactive refresh timers."""

    def refresh_armed(self, key: str, delay_seconds: float) -> None:
        ...

    def scheduled_refresh_failed(self, key: str, reason: str) -> None:
        ...

    def scheduler_shutdown(self, cancelled: int) -> None:
        ...

    def with_context(self, context: ObservationContext) -> RefreshSchedulerProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultRefreshSchedulerProbe:
    """Default implementation of RefreshSchedulerProbe using structlog."""

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

    def with_context(
        self, context: ObservationContext
    ) -> DefaultRefreshSchedulerProbe:
        return DefaultRefreshSchedulerProbe(logger=self._logger, context=context)

    def refresh_armed(self, key: str, delay_seconds: float) -> None:
        self._logger.debug(
            "oauth_refresh_armed",
            key=key,
            delay_seconds=round(delay_seconds, 3),
            **self._get_context_kwargs(),
        )

    def scheduled_refresh_failed(self, key: str, reason: str) -> None:
        self._logger.warning(
            "oauth_scheduled_refresh_failed",
            key=key,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def scheduler_shutdown(self, cancelled: int) -> None:
        self._logger.info(
            "oauth_refresh_scheduler_shutdown",
            cancelled=cancelled,
            **self._get_context_kwargs(),
        )
