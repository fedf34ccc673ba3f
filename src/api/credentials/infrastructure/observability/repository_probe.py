"""Domain probe for API key repository operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class APIKeyRepositoryProbe(Protocol):
    """Domain probe for API key repository operations."""

    def api_key_saved(self, api_key_id: str, owner_id: str) -> None:
        ...

    def api_key_not_found(self, api_key_id: str) -> None:
        ...

    def candidates_loaded(self, environment: str, count: int) -> None:
        ...

    def api_key_deleted(self, api_key_id: str) -> None:
        ...

    def with_context(self, context: ObservationContext) -> APIKeyRepositoryProbe:
        ...


class DefaultAPIKeyRepositoryProbe:
    """Default implementation of APIKeyRepositoryProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAPIKeyRepositoryProbe:
        return DefaultAPIKeyRepositoryProbe(logger=self._logger, context=context)

    def api_key_saved(self, api_key_id: str, owner_id: str) -> None:
        self._logger.debug(
            "api_key_saved",
            api_key_id=api_key_id,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )

    def api_key_not_found(self, api_key_id: str) -> None:
        self._logger.debug(
            "api_key_not_found",
            api_key_id=api_key_id,
            **self._get_context_kwargs(),
        )

    def candidates_loaded(self, environment: str, count: int) -> None:
        self._logger.debug(
            "api_key_candidates_loaded",
            environment=environment,
            count=count,
            **self._get_context_kwargs(),
        )

    def api_key_deleted(self, api_key_id: str) -> None:
        self._logger.info(
            "api_key_deleted",
            api_key_id=api_key_id,
            **self._get_context_kwargs(),
        )
