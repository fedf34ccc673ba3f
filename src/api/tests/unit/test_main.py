"""Unit tests for main FastAPI application wiring.

Covers the health endpoints and the lifespan's start/stop ordering of
background workers. Every application-scoped singleton is patched so no
database or provider is touched.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from audit.application.audit_logger import AuditLogger, AuditLoggerHealth
from infrastructure.database.exceptions import StorageUnavailableError
from shared_kernel.crypto import InvalidEncryptionKeyError


@dataclass
class LifespanMocks:
    audit_logger: AsyncMock
    rate_limiter: AsyncMock
    token_vault: AsyncMock
    scheduler: AsyncMock
    provider: AsyncMock
    get_secret_codec: MagicMock
    close_database_connections: AsyncMock
    probe: MagicMock


@pytest.fixture
def lifespan_mocks() -> Iterator[LifespanMocks]:
    mocks = LifespanMocks(
        audit_logger=AsyncMock(),
        rate_limiter=AsyncMock(),
        token_vault=AsyncMock(),
        scheduler=AsyncMock(),
        provider=AsyncMock(),
        get_secret_codec=MagicMock(),
        close_database_connections=AsyncMock(),
        probe=MagicMock(),
    )
    with (
        patch("main.configure_logging"),
        patch("main.DefaultStartupProbe", return_value=mocks.probe),
        patch("main.get_audit_logger", return_value=mocks.audit_logger),
        patch("main.get_rate_limiter_service", return_value=mocks.rate_limiter),
        patch("main.get_secret_codec", mocks.get_secret_codec),
        patch("main.get_token_vault", return_value=mocks.token_vault),
        patch("main.get_refresh_scheduler", return_value=mocks.scheduler),
        patch("main.get_identity_provider", return_value=mocks.provider),
        patch(
            "main.close_database_connections", mocks.close_database_connections
        ),
    ):
        yield mocks


class TestLifespan:
    """Tests for warden_lifespan."""

    @pytest.mark.asyncio
    async def test_starts_and_stops_all_workers(
        self, lifespan_mocks: LifespanMocks
    ) -> None:
        from main import app, warden_lifespan

        async with warden_lifespan(app):
            lifespan_mocks.audit_logger.start.assert_awaited_once()
            lifespan_mocks.rate_limiter.start.assert_awaited_once()
            lifespan_mocks.token_vault.resume_refresh_schedule.assert_awaited_once()
            lifespan_mocks.probe.background_workers_started.assert_called_once_with(
                ["audit_logger", "rate_limit_eviction", "token_refresh_scheduler"]
            )

        lifespan_mocks.scheduler.shutdown.assert_awaited_once()
        lifespan_mocks.provider.aclose.assert_awaited_once()
        lifespan_mocks.rate_limiter.stop.assert_awaited_once()
        lifespan_mocks.audit_logger.stop.assert_awaited_once()
        lifespan_mocks.close_database_connections.assert_awaited_once()
        lifespan_mocks.probe.application_stopped.assert_called_once()

    @pytest.mark.asyncio
    async def test_invalid_encryption_key_disables_vault(
        self, lifespan_mocks: LifespanMocks
    ) -> None:
        from main import app, warden_lifespan

        lifespan_mocks.get_secret_codec.side_effect = InvalidEncryptionKeyError(
            "WARDEN_CRYPTO_ENCRYPTION_KEY is not set"
        )

        async with warden_lifespan(app):
            lifespan_mocks.token_vault.resume_refresh_schedule.assert_not_awaited()
            lifespan_mocks.probe.encryption_unavailable.assert_called_once_with(
                "WARDEN_CRYPTO_ENCRYPTION_KEY is not set"
            )
            lifespan_mocks.audit_logger.start.assert_awaited_once()

        lifespan_mocks.scheduler.shutdown.assert_not_awaited()
        lifespan_mocks.provider.aclose.assert_not_awaited()
        lifespan_mocks.audit_logger.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_storage_failure_skips_refresh_schedule(
        self, lifespan_mocks: LifespanMocks
    ) -> None:
        from main import app, warden_lifespan

        lifespan_mocks.token_vault.resume_refresh_schedule.side_effect = (
            StorageUnavailableError("database down")
        )

        async with warden_lifespan(app):
            lifespan_mocks.probe.refresh_schedule_unavailable.assert_called_once()
            lifespan_mocks.probe.background_workers_started.assert_called_once_with(
                ["audit_logger", "rate_limit_eviction"]
            )

        lifespan_mocks.scheduler.shutdown.assert_awaited_once()


class TestHealthEndpoints:
    """Tests for /health and /health/audit."""

    @pytest.fixture
    def mock_audit_logger(self) -> MagicMock:
        return MagicMock(spec=AuditLogger)

    @pytest.fixture
    def client(self, mock_audit_logger: MagicMock) -> Iterator[TestClient]:
        from audit.dependencies import get_audit_logger
        from main import app

        app.dependency_overrides[get_audit_logger] = lambda: mock_audit_logger
        # No context manager: the lifespan is not run
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_audit_health_ok(
        self, client: TestClient, mock_audit_logger: MagicMock
    ) -> None:
        mock_audit_logger.health.return_value = AuditLoggerHealth(
            enabled=True,
            running=True,
            queued=4,
            consecutive_failures=0,
            dropped=0,
            last_error=None,
        )

        response = client.get("/health/audit")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["queued"] == 4

    def test_audit_health_disabled(
        self, client: TestClient, mock_audit_logger: MagicMock
    ) -> None:
        mock_audit_logger.health.return_value = AuditLoggerHealth(
            enabled=False,
            running=True,
            queued=0,
            consecutive_failures=3,
            dropped=12,
            last_error="connection refused",
        )

        body = client.get("/health/audit").json()

        assert body["status"] == "disabled"
        assert body["enabled"] is False
        assert body["dropped"] == 12
        assert body["last_error"] == "connection refused"

    def test_degraded_while_failing(
        self, client: TestClient, mock_audit_logger: MagicMock
    ) -> None:
        mock_audit_logger.health.return_value = AuditLoggerHealth(
            enabled=True,
            running=True,
            queued=10,
            consecutive_failures=1,
            dropped=0,
            last_error="timeout",
        )

        assert client.get("/health/audit").json()["status"] == "degraded"
