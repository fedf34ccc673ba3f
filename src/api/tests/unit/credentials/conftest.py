"""Fixtures for credentials unit tests.

The in-memory repositories honour the same filtering rules as the
PostgreSQL ones so service behaviour can be exercised end to end.
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import create_autospec

import pytest

from credentials.application.observability import APIKeyServiceProbe
from credentials.application.services import APIKeyService
from credentials.domain.aggregates import APIKey
from credentials.domain.value_objects import (
    AccessPolicy,
    APIKeyId,
    Environment,
    OwnerId,
)


class InMemoryAPIKeyRepository:
    def __init__(self) -> None:
        self.keys: dict[str, APIKey] = {}

    async def save(self, api_key: APIKey) -> None:
        self.keys[api_key.id.value] = api_key

    async def get_by_id(
        self, api_key_id: APIKeyId, owner_id: OwnerId, for_update: bool = False
    ) -> APIKey | None:
        key = self.keys.get(api_key_id.value)
        if key is None or key.owner_id != owner_id:
            return None
        return key

    async def list_by_owner(self, owner_id: OwnerId) -> list[APIKey]:
        keys = [k for k in self.keys.values() if k.owner_id == owner_id]
        return sorted(keys, key=lambda k: k.created_at, reverse=True)

    async def list_valid_for_environment(
        self, environment: Environment, now: datetime
    ) -> list[APIKey]:
        return [
            k
            for k in self.keys.values()
            if k.environment == environment and k.is_valid(now)
        ]

    async def count_active(self, owner_id: OwnerId) -> int:
        return sum(
            1
            for k in self.keys.values()
            if k.owner_id == owner_id and k.is_active and not k.is_revoked
        )

    async def record_usage(self, api_key_id: APIKeyId, used_at: datetime) -> int | None:
        key = self.keys.get(api_key_id.value)
        if key is None or not key.is_active or key.is_revoked:
            return None
        key.total_requests += 1
        key.last_used_at = used_at
        return key.total_requests

    async def delete(self, api_key_id: APIKeyId, owner_id: OwnerId) -> bool:
        key = self.keys.get(api_key_id.value)
        if key is None or key.owner_id != owner_id:
            return False
        del self.keys[api_key_id.value]
        return True


class InMemoryAccessPolicyRepository:
    def __init__(self) -> None:
        self.policies: dict[str, AccessPolicy] = {}

    async def get(self, owner_id: OwnerId, for_update: bool = False) -> AccessPolicy | None:
        return self.policies.get(owner_id.value)

    async def save(self, policy: AccessPolicy) -> None:
        self.policies[policy.owner_id.value] = policy


@pytest.fixture
def api_key_repository() -> InMemoryAPIKeyRepository:
    return InMemoryAPIKeyRepository()


@pytest.fixture
def access_policy_repository() -> InMemoryAccessPolicyRepository:
    return InMemoryAccessPolicyRepository()


@pytest.fixture
def mock_probe():
    return create_autospec(APIKeyServiceProbe, instance=True)


@pytest.fixture
def mock_audit():
    from audit.application import AuditLogger

    return create_autospec(AuditLogger, instance=True)


@pytest.fixture
def api_key_service(
    mock_session,
    api_key_repository,
    access_policy_repository,
    mock_probe,
    mock_audit,
) -> APIKeyService:
    """APIKeyService over in-memory repositories with the cheapest bcrypt cost."""
    return APIKeyService(
        session=mock_session,
        api_key_repository=api_key_repository,
        access_policy_repository=access_policy_repository,
        probe=mock_probe,
        audit=mock_audit,
        bcrypt_rounds=4,
        default_max_api_keys=3,
    )
