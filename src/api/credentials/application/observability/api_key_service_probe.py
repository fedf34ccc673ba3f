"""Protocol for API key application service observability.

Defines the interface for domain probes that capture application-level
domain events for API key service operations. Probes never receive key
material; only ids, prefixes and owner ids.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class APIKeyServiceProbe(Protocol):
    """Domain probe for API key application service operations."""

    def api_key_created(
        self, api_key_id: str, owner_id: str, name: str, environment: str
    ) -> None:
        """Record that an API key was created."""
        ...

    def api_key_creation_failed(self, owner_id: str, error: str) -> None:
        """Record that API key creation failed."""
        ...

    def api_key_limit_reached(self, owner_id: str, current: int, maximum: int) -> None:
        """Record that an owner hit their active key limit."""
        ...

    def api_key_validated(self, api_key_id: str, owner_id: str, environment: str) -> None:
        """Record that a presented key matched a stored hash."""
        ...

    def api_key_validation_failed(self, reason: str, environment: str | None) -> None:
        """Record that a presented key did not validate."""
        ...

    def api_key_revoked(self, api_key_id: str, owner_id: str, reason: str | None) -> None:
        """Record that an API key was revoked."""
        ...

    def api_key_already_revoked(self, api_key_id: str, owner_id: str) -> None:
        """Record a no-op revocation of an already revoked key."""
        ...

    def api_key_revocation_failed(self, api_key_id: str, error: str) -> None:
        """Record that API key revocation failed."""
        ...

    def api_key_rotated(self, old_api_key_id: str, new_api_key_id: str, owner_id: str) -> None:
        """Record that a key was replaced by a new one."""
        ...

    def api_key_rotation_failed(self, api_key_id: str, error: str) -> None:
        """Record that rotation failed and the old key was left untouched."""
        ...

    def api_key_list_retrieved(self, owner_id: str, count: int) -> None:
        """Record that API keys were listed for an owner."""
        ...

    def api_key_purged(self, api_key_id: str, owner_id: str) -> None:
        """Record that a key was permanently deleted."""
        ...

    def with_context(self, context: ObservationContext) -> APIKeyServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAPIKeyServiceProbe:
    """Default implementation of APIKeyServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAPIKeyServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultAPIKeyServiceProbe(logger=self._logger, context=context)

    def api_key_created(
        self, api_key_id: str, owner_id: str, name: str, environment: str
    ) -> None:
        """Record that an API key was created."""
        self._logger.info(
            "api_key_created",
            api_key_id=api_key_id,
            owner_id=owner_id,
            name=name,
            environment=environment,
            **self._get_context_kwargs(),
        )

    def api_key_creation_failed(self, owner_id: str, error: str) -> None:
        """Record that API key creation failed."""
        self._logger.error(
            "api_key_creation_failed",
            owner_id=owner_id,
            error=error,
            **self._get_context_kwargs(),
        )

    def api_key_limit_reached(self, owner_id: str, current: int, maximum: int) -> None:
        """Record that an owner hit their active key limit."""
        self._logger.info(
            "api_key_limit_reached",
            owner_id=owner_id,
            current=current,
            maximum=maximum,
            **self._get_context_kwargs(),
        )

    def api_key_validated(self, api_key_id: str, owner_id: str, environment: str) -> None:
        """Record that a presented key matched a stored hash."""
        self._logger.debug(
            "api_key_validated",
            api_key_id=api_key_id,
            owner_id=owner_id,
            environment=environment,
            **self._get_context_kwargs(),
        )

    def api_key_validation_failed(self, reason: str, environment: str | None) -> None:
        """Record that a presented key did not validate."""
        self._logger.info(
            "api_key_validation_failed",
            reason=reason,
            environment=environment,
            **self._get_context_kwargs(),
        )

    def api_key_revoked(self, api_key_id: str, owner_id: str, reason: str | None) -> None:
        """Record that an API key was revoked."""
        self._logger.info(
            "api_key_revoked",
            api_key_id=api_key_id,
            owner_id=owner_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def api_key_already_revoked(self, api_key_id: str, owner_id: str) -> None:
        """Record a no-op revocation of an already revoked key."""
        self._logger.debug(
            "api_key_already_revoked",
            api_key_id=api_key_id,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )

    def api_key_revocation_failed(self, api_key_id: str, error: str) -> None:
        """Record that API key revocation failed."""
        self._logger.error(
            "api_key_revocation_failed",
            api_key_id=api_key_id,
            error=error,
            **self._get_context_kwargs(),
        )

    def api_key_rotated(self, old_api_key_id: str, new_api_key_id: str, owner_id: str) -> None:
        """Record that a key was replaced by a new one."""
        self._logger.info(
            "api_key_rotated",
            old_api_key_id=old_api_key_id,
            new_api_key_id=new_api_key_id,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )

    def api_key_rotation_failed(self, api_key_id: str, error: str) -> None:
        """Record that rotation failed and the old key was left untouched."""
        self._logger.error(
            "api_key_rotation_failed",
            api_key_id=api_key_id,
            error=error,
            **self._get_context_kwargs(),
        )

    def api_key_list_retrieved(self, owner_id: str, count: int) -> None:
        """Record that API keys were listed for an owner."""
        self._logger.info(
            "api_key_list_retrieved",
            owner_id=owner_id,
            count=count,
            **self._get_context_kwargs(),
        )

    def api_key_purged(self, api_key_id: str, owner_id: str) -> None:
        """Record that a key was permanently deleted."""
        self._logger.warning(
            "api_key_purged",
            api_key_id=api_key_id,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )
