"""Repository protocols (ports) for the credentials bounded context."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from credentials.domain.aggregates import APIKey
from credentials.domain.value_objects import (
    AccessPolicy,
    APIKeyId,
    Environment,
    OwnerId,
)


@runtime_checkable
class IAPIKeyRepository(Protocol):
    """Repository for APIKey aggregate persistence.

    Implementations raise StorageUnavailableError for connectivity and
    timeout failures.
    """

    async def save(self, api_key: APIKey) -> None:
        """Insert a new key or update an existing one. Does not commit."""
        ...

    async def get_by_id(
        self,
        api_key_id: APIKeyId,
        owner_id: OwnerId,
        for_update: bool = False,
    ) -> APIKey | None:
        """Retrieve a key owned by ``owner_id``.

        Returns:
            The APIKey aggregate, or None if absent or owned by someone else
        """
        ...

    async def list_by_owner(self, owner_id: OwnerId) -> list[APIKey]:
        """List every key of an owner, newest first, including revoked ones."""
        ...

    async def list_valid_for_environment(
        self, environment: Environment, now: datetime
    ) -> list[APIKey]:
        """List active, non-revoked, non-expired keys of one environment."""
        ...

    async def count_active(self, owner_id: OwnerId) -> int:
        """Count active, non-revoked keys of an owner."""
        ...

    async def record_usage(self, api_key_id: APIKeyId, used_at: datetime) -> int | None:
        """Atomically bump total_requests and last_used_at.

        Returns:
            The new total_requests, or None if the key is no longer valid
        """
        ...

    async def delete(self, api_key_id: APIKeyId, owner_id: OwnerId) -> bool:
        """Hard delete an owned key.

        Returns:
            True if deleted, False if not found
        """
        ...


@runtime_checkable
class IAccessPolicyRepository(Protocol):
    """Repository for per-owner API access policies."""

    async def get(self, owner_id: OwnerId, for_update: bool = False) -> AccessPolicy | None:
        """Retrieve an owner's policy, optionally locking the row."""
        ...

    async def save(self, policy: AccessPolicy) -> None:
        """Insert or replace an owner's policy. Does not commit."""
        ...
