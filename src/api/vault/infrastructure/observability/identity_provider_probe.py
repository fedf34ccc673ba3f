"""Protocol for identity provider client observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class IdentityProviderProbe(Protocol):
    """Domain probe for calls to the OAuth identity provider."""

    def provider_call_failed(
        self, operation: str, reason: str, status_code: int | None = None
    ) -> None:
        """Record that a provider call failed."""
        ...

    def provider_call_timed_out(self, operation: str, timeout_seconds: float) -> None:
        """Record that a provider call exceeded its timeout."""
        ...

    def with_context(self, context: ObservationContext) -> IdentityProviderProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultIdentityProviderProbe:
    """Default implementation of IdentityProviderProbe using structlog."""

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
    ) -> DefaultIdentityProviderProbe:
        return DefaultIdentityProviderProbe(logger=self._logger, context=context)

    def provider_call_failed(
        self, operation: str, reason: str, status_code: int | None = None
    ) -> None:
        self._logger.warning(
            "identity_provider_call_failed",
            operation=operation,
            reason=reason,
            status_code=status_code,
            **self._get_context_kwargs(),
        )

    def provider_call_timed_out(self, operation: str, timeout_seconds: float) -> None:
        self._logger.warning(
            "identity_provider_call_timed_out",
            operation=operation,
            timeout_seconds=timeout_seconds,
            **self._get_context_kwargs(),
        )
