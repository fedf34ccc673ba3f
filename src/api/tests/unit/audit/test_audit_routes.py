"""Unit tests for audit trail HTTP routes."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from audit.application.services import AuditQueryService, AuditReport
from audit.domain.value_objects import AuditEvent, AuditEventType, AuditPage
from infrastructure.database.exceptions import StorageUnavailableError


@pytest.fixture
def mock_query_service() -> AsyncMock:
    return AsyncMock(spec=AuditQueryService)


@pytest.fixture
def test_client(mock_query_service: AsyncMock, owner_admission) -> TestClient:
    from access.dependencies import require_account_access
    from audit.dependencies import get_audit_query_service
    from audit.presentation.routes import router

    app = FastAPI()
    app.dependency_overrides[get_audit_query_service] = lambda: mock_query_service
    app.dependency_overrides[require_account_access] = lambda: owner_admission
    app.include_router(router)
    return TestClient(app)


class TestListEvents:
    def test_scopes_query_to_caller(
        self, test_client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        event = AuditEvent.create(
            AuditEventType.API_CALL,
            actor_id="owner-123",
            metadata={"token": "secret-value"},
        )
        mock_query_service.query.return_value = AuditPage(
            events=[event], total=1, limit=50, offset=0
        )

        response = test_client.get(
            "/audit/events", params={"event_type": "api.call", "limit": 50}
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 1
        assert body["has_more"] is False
        assert body["events"][0]["metadata"] == {"token": "[REDACTED]"}
        query = mock_query_service.query.call_args.args[0]
        assert query.actor_id == "owner-123"
        assert query.event_type is AuditEventType.API_CALL
        assert query.limit == 50

    def test_naive_timestamps_are_utc(
        self, test_client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        mock_query_service.query.return_value = AuditPage(
            events=[], total=0, limit=100, offset=0
        )

        test_client.get("/audit/events", params={"start": "2026-01-01T00:00:00"})

        query = mock_query_service.query.call_args.args[0]
        assert query.start == datetime(2026, 1, 1, tzinfo=UTC)

    def test_inverted_range_returns_422(
        self, test_client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        response = test_client.get(
            "/audit/events",
            params={"start": "2026-02-01T00:00:00Z", "end": "2026-01-01T00:00:00Z"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
        mock_query_service.query.assert_not_called()

    def test_unknown_event_type_returns_422(self, test_client: TestClient) -> None:
        response = test_client.get("/audit/events", params={"event_type": "nope"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT

    def test_storage_failure_returns_503(
        self, test_client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        mock_query_service.query.side_effect = StorageUnavailableError("down")

        response = test_client.get("/audit/events")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestReport:
    def test_defaults_to_last_30_days(
        self, test_client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        end = datetime.now(UTC)
        mock_query_service.generate_report.return_value = AuditReport(
            actor_id="owner-123",
            start=end - timedelta(days=30),
            end=end,
            total_events=2,
            by_severity={"info": 2},
            by_event_type={"api.call": 2},
            failed_operations=0,
            security_events=0,
            top_events=[("api.call", 2)],
        )

        response = test_client.get("/audit/report")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["top_events"] == [{"event_type": "api.call", "count": 2}]
        kwargs = mock_query_service.generate_report.call_args.kwargs
        assert kwargs["actor_id"] == "owner-123"
        assert kwargs["end"] - kwargs["start"] == timedelta(days=30)
