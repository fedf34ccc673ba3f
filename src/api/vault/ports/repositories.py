"""Repository protocols (ports) for the vault bounded context.

Repositories only ever see ciphertext; encryption and decryption happen in
the application layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from vault.domain.value_objects import ServiceAccountKeyRecord, StoredToken


@runtime_checkable
class ITokenRepository(Protocol):
    """Persistence of encrypted OAuth token records keyed by (owner, workspace)."""

    async def get(self, owner_id: str, workspace_id: str | None) -> StoredToken | None:
        ...

    async def upsert(self, token: StoredToken) -> None:
        """Insert or replace the record for (owner, workspace)."""
        ...

    async def update_refreshed(self, token: StoredToken) -> bool:
        """Overwrite an existing record after a refresh.

        Never inserts; returns False if the record is gone.
        """
        ...

    async def delete(self, owner_id: str, workspace_id: str | None) -> bool:
        """Delete the record; False if none existed."""
        ...

    async def delete_expired_without_refresh(self, now: datetime) -> int:
        """Delete expired records that hold no refresh token."""
        ...

    async def list_refreshable(self) -> list[StoredToken]:
        """User token records that hold a refresh token."""
        ...


@runtime_checkable
class IServiceAccountKeyRepository(Protocol):
    """Persistence of encrypted service account keys keyed by domain."""

    async def get(self, domain: str) -> ServiceAccountKeyRecord | None:
        ...

    async def upsert(self, record: ServiceAccountKeyRecord) -> None:
        ...
