"""Domain probe for the secret codec."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class SecretCodecProbe(Protocol):
    """Domain probe for secret codec operations."""

    def decryption_failed(self, reason: str) -> None:
        """Record that a stored secret could not be authenticated."""
        ...

    def with_context(self, context: ObservationContext) -> SecretCodecProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultSecretCodecProbe:
    """Default implementation of SecretCodecProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultSecretCodecProbe:
        """Create a new probe with observation context bound."""
        return DefaultSecretCodecProbe(logger=self._logger, context=context)

    def decryption_failed(self, reason: str) -> None:
        """Record that a stored secret could not be authenticated."""
        self._logger.critical(
            "secret_decryption_failed",
            reason=reason,
            **self._get_context_kwargs(),
        )
