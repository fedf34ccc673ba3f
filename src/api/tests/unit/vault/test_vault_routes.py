"""Unit tests for token vault HTTP routes."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from pydantic import SecretStr

from infrastructure.database.exceptions import StorageUnavailableError
from infrastructure.settings import VaultSettings
from shared_kernel.crypto import TamperedOrCorruptCiphertextError
from vault.application import TokenVault
from vault.domain.value_objects import ExternalIdentity, TokenHealth, TokenHealthStatus
from vault.ports.exceptions import (
    IdentityProviderError,
    IdentityProviderTimeoutError,
    NoCredentialError,
    RefreshFailedError,
    RefreshUnavailableError,
)

CLEANUP_SECRET = "cron-secret-value"


@pytest.fixture
def mock_vault() -> AsyncMock:
    return AsyncMock(spec=TokenVault)


@pytest.fixture
def test_client(mock_vault: AsyncMock, owner_admission) -> TestClient:
    from access.dependencies import require_account_access
    from infrastructure.settings import get_vault_settings
    from vault.dependencies import get_token_vault
    from vault.presentation.routes import router

    app = FastAPI()
    app.dependency_overrides[get_token_vault] = lambda: mock_vault
    app.dependency_overrides[require_account_access] = lambda: owner_admission
    app.dependency_overrides[get_vault_settings] = lambda: VaultSettings(
        cleanup_secret=SecretStr(CLEANUP_SECRET)
    )
    app.include_router(router)
    return TestClient(app)


def _healthy() -> TokenHealth:
    return TokenHealth(
        status=TokenHealthStatus.HEALTHY,
        message="Token is valid",
        expires_at=datetime.now(UTC) + timedelta(hours=1),
        has_refresh_token=True,
        minutes_until_expiry=60,
    )


class TestHealthRoute:
    def test_reports_health_for_caller(
        self, test_client: TestClient, mock_vault: AsyncMock
    ) -> None:
        mock_vault.check_health.return_value = _healthy()

        response = test_client.get("/vault/tokens/health", params={"workspace_id": "ws"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "healthy"
        assert body["recommendations"] == ["No action needed"]
        mock_vault.check_health.assert_awaited_once_with("owner-123", "ws")

    def test_missing_refresh_token_recommends_reconnect(
        self, test_client: TestClient, mock_vault: AsyncMock
    ) -> None:
        mock_vault.check_health.return_value = TokenHealth(
            status=TokenHealthStatus.EXPIRED, message="expired"
        )

        body = test_client.get("/vault/tokens/health").json()

        assert len(body["recommendations"]) == 2

    def test_storage_failure(self, test_client: TestClient, mock_vault: AsyncMock) -> None:
        mock_vault.check_health.side_effect = StorageUnavailableError("down")

        response = test_client.get("/vault/tokens/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestRefreshRoute:
    def test_forces_refresh(self, test_client: TestClient, mock_vault: AsyncMock) -> None:
        mock_vault.get_valid_access_token.return_value = "new-token"
        mock_vault.check_health.return_value = _healthy()

        response = test_client.post("/vault/tokens/refresh", json={"workspace_id": "ws"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["refreshed"] is True
        assert "new-token" not in response.text
        mock_vault.get_valid_access_token.assert_awaited_once_with(
            "owner-123", "ws", force_refresh=True
        )

    @pytest.mark.parametrize(
        "error,expected",
        [
            (NoCredentialError("none"), status.HTTP_404_NOT_FOUND),
            (RefreshUnavailableError("no refresh token"), status.HTTP_409_CONFLICT),
            (RefreshFailedError("failed"), status.HTTP_409_CONFLICT),
            (TamperedOrCorruptCiphertextError("bad"), status.HTTP_500_INTERNAL_SERVER_ERROR),
            (StorageUnavailableError("down"), status.HTTP_503_SERVICE_UNAVAILABLE),
        ],
    )
    def test_error_mapping(
        self, test_client: TestClient, mock_vault: AsyncMock, error, expected: int
    ) -> None:
        mock_vault.get_valid_access_token.side_effect = error

        response = test_client.post("/vault/tokens/refresh")

        assert response.status_code == expected


class TestRevokeRoute:
    def test_revoke(self, test_client: TestClient, mock_vault: AsyncMock) -> None:
        mock_vault.revoke.return_value = True

        response = test_client.delete("/vault/tokens")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        mock_vault.revoke.assert_awaited_once_with("owner-123", None)

    def test_nothing_stored(self, test_client: TestClient, mock_vault: AsyncMock) -> None:
        mock_vault.revoke.return_value = False

        response = test_client.delete("/vault/tokens")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestOAuthCallbackRoute:
    def test_connects_account(self, test_client: TestClient, mock_vault: AsyncMock) -> None:
        mock_vault.connect.return_value = ExternalIdentity(
            email="ada@example.com", domain="example.com"
        )

        response = test_client.post("/vault/oauth/callback", json={"code": "abc"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["email"] == "ada@example.com"
        assert mock_vault.connect.call_args.kwargs["owner_id"] == "owner-123"

    @pytest.mark.parametrize(
        "error,expected",
        [
            (IdentityProviderTimeoutError("slow"), status.HTTP_504_GATEWAY_TIMEOUT),
            (
                IdentityProviderError("invalid_grant", status_code=400, retryable=False),
                status.HTTP_502_BAD_GATEWAY,
            ),
        ],
    )
    def test_provider_errors(
        self, test_client: TestClient, mock_vault: AsyncMock, error, expected: int
    ) -> None:
        mock_vault.connect.side_effect = error

        response = test_client.post("/vault/oauth/callback", json={"code": "abc"})

        assert response.status_code == expected

    def test_empty_code_rejected(self, test_client: TestClient) -> None:
        response = test_client.post("/vault/oauth/callback", json={"code": ""})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


class TestCleanupRoute:
    def test_requires_bearer_secret(
        self, test_client: TestClient, mock_vault: AsyncMock
    ) -> None:
        for headers in ({}, {"Authorization": "Bearer wrong"}):
            response = test_client.post("/vault/tokens/cleanup", headers=headers)
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
        mock_vault.cleanup_expired_tokens.assert_not_called()

    def test_deletes_expired_tokens(
        self, test_client: TestClient, mock_vault: AsyncMock
    ) -> None:
        mock_vault.cleanup_expired_tokens.return_value = 4

        response = test_client.post(
            "/vault/tokens/cleanup",
            headers={"Authorization": f"Bearer {CLEANUP_SECRET}"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["deleted_count"] == 4

    def test_unset_secret_rejects_everything(self, mock_vault: AsyncMock) -> None:
        from infrastructure.settings import get_vault_settings
        from vault.dependencies import get_token_vault
        from vault.presentation.routes import router

        app = FastAPI()
        app.dependency_overrides[get_token_vault] = lambda: mock_vault
        app.dependency_overrides[get_vault_settings] = lambda: VaultSettings(
            cleanup_secret=SecretStr("")
        )
        app.include_router(router)

        response = TestClient(app).post("/vault/tokens/cleanup")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
