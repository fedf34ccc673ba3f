"""Domain probe for application startup and lifecycle events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class StartupProbe(Protocol):
    """Domain probe for application startup operations."""

    def application_starting(self, version: str) -> None:
        """Record that the application lifespan began."""
        ...

    def background_workers_started(self, workers: list[str]) -> None:
        """Record which background workers were started."""
        ...

    def encryption_unavailable(self, error: str) -> None:
        """Record that the token vault cannot run without an encryption key."""
        ...

    def refresh_schedule_unavailable(self, error: str) -> None:
        """Record that stored tokens could not be re-armed at startup."""
        ...

    def application_stopped(self) -> None:
        """Record that shutdown completed."""
        ...

    def with_context(self, context: ObservationContext) -> StartupProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultStartupProbe:
    """Default implementation of StartupProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultStartupProbe:
        """Create a new probe with observation context bound."""
        return DefaultStartupProbe(logger=self._logger, context=context)

    def application_starting(self, version: str) -> None:
        """Record that the application lifespan began."""
        self._logger.info(
            "application_starting",
            version=version,
            **self._get_context_kwargs(),
        )

    def background_workers_started(self, workers: list[str]) -> None:
        """Record which background workers were started."""
        self._logger.info(
            "background_workers_started",
            workers=workers,
            **self._get_context_kwargs(),
        )

    def encryption_unavailable(self, error: str) -> None:
        """Record that the token vault cannot run without an encryption key."""
        self._logger.warning(
            "encryption_unavailable",
            error=error,
            **self._get_context_kwargs(),
        )

    def application_stopped(self) -> None:
        """Record that shutdown completed."""
        self._logger.info("application_stopped", **self._get_context_kwargs())

    def refresh_schedule_unavailable(self, error: str) -> None:
        """Record that stored tokens could not be re-armed at startup."""
        self._logger.warning(
            "refresh_schedule_unavailable",
            error=error,
            **self._get_context_kwargs(),
        )
