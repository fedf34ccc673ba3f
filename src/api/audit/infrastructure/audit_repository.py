"""PostgreSQL implementation of IAuditEventRepository and the flush sink."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import and_, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from audit.domain.value_objects import (
    AuditEvent,
    AuditEventType,
    AuditPage,
    AuditQuery,
    AuditSeverity,
)
from audit.infrastructure.models import AuditEventModel
from audit.ports.repositories import IAuditEventRepository
from infrastructure.database.exceptions import translate_storage_errors


class AuditEventRepository(IAuditEventRepository):
    """Repository for audit events backed by the audit_events table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append_many(self, events: Sequence[AuditEvent]) -> None:
        """Bulk insert events within the caller's transaction."""
        if not events:
            return
        with translate_storage_errors("audit.append_many"):
            await self._session.execute(
                insert(AuditEventModel),
                [self._to_row(event) for event in events],
            )

    async def query(self, query: AuditQuery) -> AuditPage:
        """Return one page of events matching the filters, newest first."""
        conditions = self._conditions(query)

        count_stmt = select(func.count()).select_from(AuditEventModel)
        page_stmt = (
            select(AuditEventModel)
            .order_by(AuditEventModel.created_at.desc(), AuditEventModel.id.desc())
            .limit(query.limit)
            .offset(query.offset)
        )
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            page_stmt = page_stmt.where(and_(*conditions))

        with translate_storage_errors("audit.query"):
            total = (await self._session.execute(count_stmt)).scalar_one()
            models = (await self._session.execute(page_stmt)).scalars().all()

        return AuditPage(
            events=[self._to_domain(model) for model in models],
            total=total,
            limit=query.limit,
            offset=query.offset,
        )

    async def list_between(
        self,
        actor_id: str,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[AuditEvent]:
        """Return up to ``limit`` events for one actor in a time range."""
        stmt = (
            select(AuditEventModel)
            .where(
                and_(
                    AuditEventModel.actor_id == actor_id,
                    AuditEventModel.created_at >= start,
                    AuditEventModel.created_at <= end,
                )
            )
            .order_by(AuditEventModel.created_at.desc())
            .limit(limit)
        )
        with translate_storage_errors("audit.list_between"):
            models = (await self._session.execute(stmt)).scalars().all()
        return [self._to_domain(model) for model in models]

    def _conditions(self, query: AuditQuery) -> list:
        conditions = []
        if query.actor_id is not None:
            conditions.append(AuditEventModel.actor_id == query.actor_id)
        if query.event_type is not None:
            conditions.append(AuditEventModel.event_type == query.event_type.value)
        if query.severity is not None:
            conditions.append(AuditEventModel.severity == query.severity.value)
        if query.workspace_id is not None:
            conditions.append(AuditEventModel.workspace_id == query.workspace_id)
        if query.start is not None:
            conditions.append(AuditEventModel.created_at >= query.start)
        if query.end is not None:
            conditions.append(AuditEventModel.created_at <= query.end)
        return conditions

    @staticmethod
    def _to_row(event: AuditEvent) -> dict:
        return {
            "id": event.id,
            "event_type": event.event_type.value,
            "severity": event.severity.value,
            "actor_id": event.actor_id,
            "success": event.success,
            "event_metadata": event.metadata,
            "resource_type": event.resource_type,
            "resource_id": event.resource_id,
            "workspace_id": event.workspace_id,
            "ip_address": event.ip_address,
            "user_agent": event.user_agent,
            "request_id": event.request_id,
            "error_message": event.error_message,
            "created_at": event.created_at,
        }

    @staticmethod
    def _to_domain(model: AuditEventModel) -> AuditEvent:
        return AuditEvent(
            id=model.id,
            event_type=AuditEventType(model.event_type),
            severity=AuditSeverity(model.severity),
            actor_id=model.actor_id,
            created_at=model.created_at,
            success=model.success,
            metadata=dict(model.event_metadata or {}),
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            workspace_id=model.workspace_id,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            request_id=model.request_id,
            error_message=model.error_message,
        )


class SqlAlchemyAuditSink:
    """AuditSink that writes each batch in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def write_batch(self, events: Sequence[AuditEvent]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await AuditEventRepository(session).append_many(events)
