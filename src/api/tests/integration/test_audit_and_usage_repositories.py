"""Integration tests for audit trail and API usage persistence."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from access.domain.value_objects import APIUsageRecord
from access.infrastructure.usage_repository import (
    APIUsageRepository,
    SqlAlchemyUsageRecorder,
)
from audit.domain.value_objects import (
    AuditEvent,
    AuditEventType,
    AuditQuery,
    AuditSeverity,
)
from audit.infrastructure.audit_repository import (
    AuditEventRepository,
    SqlAlchemyAuditSink,
)

pytestmark = pytest.mark.integration

ACTOR = "owner-audit"
NOW = datetime.now(UTC)


def _event(
    event_type: AuditEventType,
    minutes_ago: int,
    actor_id: str = ACTOR,
    severity: AuditSeverity = AuditSeverity.INFO,
) -> AuditEvent:
    event = AuditEvent.create(
        event_type=event_type,
        severity=severity,
        actor_id=actor_id,
        metadata={"endpoint": "/access/usage", "access_token": "ya29.secret"},
    )
    return replace(event, created_at=NOW - timedelta(minutes=minutes_ago))


class TestAuditEventRepository:
    @pytest.mark.asyncio
    async def test_sink_batch_is_queryable_newest_first(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        async_session: AsyncSession,
    ):
        events = [
            _event(AuditEventType.API_CALL, minutes_ago=30),
            _event(AuditEventType.AUTH_FAILED, 20, severity=AuditSeverity.WARNING),
            _event(AuditEventType.API_CALL, minutes_ago=10),
            _event(AuditEventType.API_CALL, minutes_ago=5, actor_id="someone-else"),
        ]

        await SqlAlchemyAuditSink(session_factory).write_batch(events)

        page = await AuditEventRepository(async_session).query(
            AuditQuery(actor_id=ACTOR, limit=2)
        )
        assert page.total == 3
        assert page.has_more is True
        assert [e.id for e in page.events] == [events[2].id, events[1].id]

    @pytest.mark.asyncio
    async def test_filters_combine(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        async_session: AsyncSession,
    ):
        events = [
            _event(AuditEventType.API_CALL, minutes_ago=90),
            _event(AuditEventType.API_CALL, minutes_ago=30),
            _event(AuditEventType.AUTH_FAILED, minutes_ago=20),
        ]
        await SqlAlchemyAuditSink(session_factory).write_batch(events)

        page = await AuditEventRepository(async_session).query(
            AuditQuery(
                actor_id=ACTOR,
                event_type=AuditEventType.API_CALL,
                start=NOW - timedelta(hours=1),
                end=NOW,
            )
        )

        assert [e.id for e in page.events] == [events[1].id]

    @pytest.mark.asyncio
    async def test_metadata_is_stored_redacted(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        async_session: AsyncSession,
    ):
        event = _event(AuditEventType.AUTH_TOKEN_REFRESH, minutes_ago=1)
        await SqlAlchemyAuditSink(session_factory).write_batch([event])

        stored = await AuditEventRepository(async_session).list_between(
            ACTOR, NOW - timedelta(hours=1), NOW, limit=10
        )

        assert len(stored) == 1
        assert stored[0].metadata["access_token"] == "[REDACTED]"
        assert stored[0].metadata["endpoint"] == "/access/usage"


class TestAPIUsageRepository:
    @pytest.mark.asyncio
    async def test_recorder_writes_and_list_since_filters(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        async_session: AsyncSession,
    ):
        recorder = SqlAlchemyUsageRecorder(session_factory)
        base = {
            "owner_id": ACTOR,
            "api_key_id": "01JAAAAAAAAAAAAAAAAAAAAAAA",
            "endpoint": "/access/usage",
            "method": "GET",
            "status_code": 200,
            "response_time_ms": 12,
        }
        await recorder.record(
            APIUsageRecord(request_id="req-old", created_at=NOW - timedelta(days=40), **base)
        )
        await recorder.record(APIUsageRecord(request_id="req-new", **base))
        await recorder.record(
            APIUsageRecord(
                request_id="req-free",
                billable=False,
                error_code="RATE_LIMIT_EXCEEDED",
                **{**base, "status_code": 429},
            )
        )

        repository = APIUsageRepository(async_session)
        billable = await repository.list_since(ACTOR, NOW - timedelta(days=30))
        everything = await repository.list_since(
            ACTOR, NOW - timedelta(days=30), billable_only=False
        )

        assert [r.request_id for r in billable] == ["req-new"]
        assert {r.request_id for r in everything} == {"req-new", "req-free"}
        denied = next(r for r in everything if r.request_id == "req-free")
        assert denied.error_code == "RATE_LIMIT_EXCEEDED"
        assert denied.status_code == 429
