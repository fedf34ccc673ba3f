"""Protocol and structlog implementation for quota repository observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class QuotaRepositoryProbe(Protocol):
    """Domain probe for quota persistence."""

    def duplicate_increment_ignored(self, owner_id: str, request_id: str) -> None:
        ...

    def window_missing(self, owner_id: str) -> None:
        ...

    def receipts_purged(self, owner_id: str, count: int) -> None:
        ...

    def with_context(self, context: ObservationContext) -> QuotaRepositoryProbe:
        ...


class DefaultQuotaRepositoryProbe:
    """Default implementation of QuotaRepositoryProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultQuotaRepositoryProbe:
        return DefaultQuotaRepositoryProbe(logger=self._logger, context=context)

    def duplicate_increment_ignored(self, owner_id: str, request_id: str) -> None:
        self._logger.info(
            "quota_duplicate_increment_ignored",
            owner_id=owner_id,
            request_id=request_id,
            **self._get_context_kwargs(),
        )

    def window_missing(self, owner_id: str) -> None:
        self._logger.warning(
            "quota_window_missing", owner_id=owner_id, **self._get_context_kwargs()
        )

    def receipts_purged(self, owner_id: str, count: int) -> None:
        self._logger.debug(
            "quota_receipts_purged",
            owner_id=owner_id,
            count=count,
            **self._get_context_kwargs(),
        )
