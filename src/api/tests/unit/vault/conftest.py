"""Fixtures for vault unit tests.

The vault opens its own sessions, so tests hand it a session factory
whose sessions do nothing and repositories that keep records in memory.
A real SecretCodec is used so tamper handling is exercised end to end.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, create_autospec

import pytest

from audit.application import AuditLogger
from shared_kernel.crypto import SecretCodec
from shared_kernel.retry import RetryPolicy
from vault.application import RefreshScheduler, TokenVault
from vault.application.observability import TokenVaultProbe
from vault.domain.value_objects import (
    ServiceAccountKeyRecord,
    StoredToken,
    TokenType,
)
from vault.ports.identity_provider import IdentityProvider


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryTokenRepository:
    def __init__(self) -> None:
        self.tokens: dict[tuple[str, str], StoredToken] = {}

    async def get(self, owner_id: str, workspace_id: str | None) -> StoredToken | None:
        return self.tokens.get((owner_id, workspace_id or ""))

    async def upsert(self, token: StoredToken) -> None:
        self.tokens[(token.owner_id, token.workspace_id or "")] = token

    async def update_refreshed(self, token: StoredToken) -> bool:
        key = (token.owner_id, token.workspace_id or "")
        if key not in self.tokens:
            return False
        self.tokens[key] = token
        return True

    async def delete(self, owner_id: str, workspace_id: str | None) -> bool:
        return self.tokens.pop((owner_id, workspace_id or ""), None) is not None

    async def delete_expired_without_refresh(self, now: datetime) -> int:
        stale = [
            key
            for key, token in self.tokens.items()
            if token.expires_at < now and not token.has_refresh_token
        ]
        for key in stale:
            del self.tokens[key]
        return len(stale)

    async def list_refreshable(self) -> list[StoredToken]:
        return [
            token
            for token in self.tokens.values()
            if token.has_refresh_token and token.token_type is TokenType.USER
        ]


class InMemoryServiceAccountKeyRepository:
    def __init__(self) -> None:
        self.records: dict[str, ServiceAccountKeyRecord] = {}

    async def get(self, domain: str) -> ServiceAccountKeyRecord | None:
        return self.records.get(domain)

    async def upsert(self, record: ServiceAccountKeyRecord) -> None:
        self.records[record.domain] = record


def _session_factory() -> MagicMock:
    session = AsyncMock()
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=None)
    session.begin = MagicMock(return_value=transaction)

    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(return_value=session)
    session_cm.__aexit__ = AsyncMock(return_value=None)
    return MagicMock(return_value=session_cm)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 12, 0, tzinfo=UTC))


@pytest.fixture
def codec() -> SecretCodec:
    return SecretCodec(os.urandom(32))


@pytest.fixture
def token_repository() -> InMemoryTokenRepository:
    return InMemoryTokenRepository()


@pytest.fixture
def key_repository() -> InMemoryServiceAccountKeyRepository:
    return InMemoryServiceAccountKeyRepository()


@pytest.fixture
def mock_provider():
    return create_autospec(IdentityProvider, instance=True)


@pytest.fixture
def mock_audit():
    return create_autospec(AuditLogger, instance=True)


@pytest.fixture
def mock_probe():
    return create_autospec(TokenVaultProbe, instance=True)


@pytest.fixture
def vault(
    codec,
    token_repository,
    key_repository,
    mock_provider,
    mock_audit,
    mock_probe,
    clock,
) -> TokenVault:
    """TokenVault without a scheduler and with zero retry backoff."""
    return TokenVault(
        session_factory=_session_factory(),
        token_repository_factory=lambda session: token_repository,
        key_repository_factory=lambda session: key_repository,
        codec=codec,
        provider=mock_provider,
        audit=mock_audit,
        retry_policy=RetryPolicy(max_retries=3, backoff_seconds=0),
        probe=mock_probe,
        clock=clock,
    )


@pytest.fixture
def scheduled_vault(
    codec,
    token_repository,
    key_repository,
    mock_provider,
    mock_audit,
    mock_probe,
    clock,
) -> tuple[TokenVault, RefreshScheduler]:
    scheduler = RefreshScheduler()
    vault = TokenVault(
        session_factory=_session_factory(),
        token_repository_factory=lambda session: token_repository,
        key_repository_factory=lambda session: key_repository,
        codec=codec,
        provider=mock_provider,
        audit=mock_audit,
        scheduler=scheduler,
        retry_policy=RetryPolicy(max_retries=3, backoff_seconds=0),
        probe=mock_probe,
        clock=clock,
    )
    return vault, scheduler
