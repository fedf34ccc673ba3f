"""Protocol for token vault observability.

Events carry owner and workspace identifiers only; token material never
reaches the process log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TokenVaultProbe(Protocol):
    """Domain probe for OAuth token custody."""

    def token_stored(self, owner_id: str, workspace_id: str | None) -> None:
        ...

    def token_refreshed(
        self, owner_id: str, workspace_id: str | None, refresh_count: int
    ) -> None:
        ...

    def refresh_skipped(self, owner_id: str, workspace_id: str | None) -> None:
        """Record that a concurrent caller already refreshed the token."""
        ...

    def refresh_discarded(self, owner_id: str, workspace_id: str | None) -> None:
        """Record a refresh whose record was deleted before it was stored."""
        ...

    def refresh_retrying(
        self, owner_id: str, workspace_id: str | None, attempt: int, reason: str
    ) -> None:
        ...

    def refresh_failed(
        self, owner_id: str, workspace_id: str | None, reason: str
    ) -> None:
        ...

    def remote_revoke_failed(
        self, owner_id: str, workspace_id: str | None, reason: str
    ) -> None:
        ...

    def token_revoked(
        self, owner_id: str, workspace_id: str | None, deleted: bool
    ) -> None:
        ...

    def decryption_failed(self, owner_id: str, resource: str) -> None:
        ...

    def expired_tokens_cleaned(self, count: int) -> None:
        ...

    def refresh_schedule_resumed(self, count: int) -> None:
        ...

    def with_context(self, context: ObservationContext) -> TokenVaultProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTokenVaultProbe:
    """Default implementation of TokenVaultProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultTokenVaultProbe:
        """Create a new probe with observation context bound."""
        return DefaultTokenVaultProbe(logger=self._logger, context=context)

    def token_stored(self, owner_id: str, workspace_id: str | None) -> None:
        self._logger.info(
            "oauth_token_stored",
            owner_id=owner_id,
            workspace_id=workspace_id,
            **self._get_context_kwargs(),
        )

    def token_refreshed(
        self, owner_id: str, workspace_id: str | None, refresh_count: int
    ) -> None:
        self._logger.info(
            "oauth_token_refreshed",
            owner_id=owner_id,
            workspace_id=workspace_id,
            refresh_count=refresh_count,
            **self._get_context_kwargs(),
        )

    def refresh_skipped(self, owner_id: str, workspace_id: str | None) -> None:
        self._logger.debug(
            "oauth_token_refresh_skipped",
            owner_id=owner_id,
            workspace_id=workspace_id,
            **self._get_context_kwargs(),
        )

    def refresh_discarded(self, owner_id: str, workspace_id: str | None) -> None:
        self._logger.info(
            "oauth_token_refresh_discarded",
            owner_id=owner_id,
            workspace_id=workspace_id,
            **self._get_context_kwargs(),
        )

    def refresh_retrying(
        self, owner_id: str, workspace_id: str | None, attempt: int, reason: str
    ) -> None:
        self._logger.warning(
            "oauth_token_refresh_retrying",
            owner_id=owner_id,
            workspace_id=workspace_id,
            attempt=attempt,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def refresh_failed(
        self, owner_id: str, workspace_id: str | None, reason: str
    ) -> None:
        self._logger.error(
            "oauth_token_refresh_failed",
            owner_id=owner_id,
            workspace_id=workspace_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def remote_revoke_failed(
        self, owner_id: str, workspace_id: str | None, reason: str
    ) -> None:
        self._logger.warning(
            "oauth_token_remote_revoke_failed",
            owner_id=owner_id,
            workspace_id=workspace_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def token_revoked(
        self, owner_id: str, workspace_id: str | None, deleted: bool
    ) -> None:
        self._logger.info(
            "oauth_token_revoked",
            owner_id=owner_id,
            workspace_id=workspace_id,
            deleted=deleted,
            **self._get_context_kwargs(),
        )

    def decryption_failed(self, owner_id: str, resource: str) -> None:
        self._logger.critical(
            "vault_decryption_failed",
            owner_id=owner_id,
            resource=resource,
            **self._get_context_kwargs(),
        )

    def expired_tokens_cleaned(self, count: int) -> None:
        self._logger.info(
            "oauth_expired_tokens_cleaned",
            count=count,
            **self._get_context_kwargs(),
        )

    def refresh_schedule_resumed(self, count: int) -> None:
        self._logger.info(
            "oauth_refresh_schedule_resumed",
            count=count,
            **self._get_context_kwargs(),
        )
