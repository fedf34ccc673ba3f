"""Protocol and structlog implementation for request authentication."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AuthMiddlewareProbe(Protocol):
    """Domain probe for the per-request admission pipeline."""

    def request_admitted(self, owner_id: str, api_key_id: str, endpoint: str) -> None:
        ...

    def request_denied(
        self, code: str, status_code: int, endpoint: str, owner_id: str | None = None
    ) -> None:
        ...

    def auth_unavailable(self, endpoint: str, error: str) -> None:
        ...

    def usage_record_failed(self, request_id: str, error: str) -> None:
        ...

    def with_context(self, context: ObservationContext) -> AuthMiddlewareProbe:
        ...


class DefaultAuthMiddlewareProbe:
    """Default implementation of AuthMiddlewareProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAuthMiddlewareProbe:
        return DefaultAuthMiddlewareProbe(logger=self._logger, context=context)

    def request_admitted(self, owner_id: str, api_key_id: str, endpoint: str) -> None:
        self._logger.debug(
            "api_request_admitted",
            owner_id=owner_id,
            api_key_id=api_key_id,
            endpoint=endpoint,
            **self._get_context_kwargs(),
        )

    def request_denied(
        self, code: str, status_code: int, endpoint: str, owner_id: str | None = None
    ) -> None:
        self._logger.info(
            "api_request_denied",
            code=code,
            status_code=status_code,
            endpoint=endpoint,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )

    def auth_unavailable(self, endpoint: str, error: str) -> None:
        self._logger.error(
            "api_auth_unavailable",
            endpoint=endpoint,
            error=error,
            **self._get_context_kwargs(),
        )

    def usage_record_failed(self, request_id: str, error: str) -> None:
        self._logger.error(
            "api_usage_record_failed",
            request_id=request_id,
            error=error,
            **self._get_context_kwargs(),
        )
