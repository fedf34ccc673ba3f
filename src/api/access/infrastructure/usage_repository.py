"""PostgreSQL implementation of IAPIUsageRepository and the usage recorder."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from access.domain.value_objects import APIUsageRecord
from access.infrastructure.models import APIUsageModel
from access.ports.repositories import IAPIUsageRepository
from infrastructure.database.exceptions import translate_storage_errors


class APIUsageRepository(IAPIUsageRepository):
    """Repository for per-request usage rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, record: APIUsageRecord) -> None:
        model = APIUsageModel(
            api_key_id=record.api_key_id,
            owner_id=record.owner_id,
            request_id=record.request_id,
            endpoint=record.endpoint,
            method=record.method,
            status_code=record.status_code,
            response_time_ms=record.response_time_ms,
            billable=record.billable,
            error_code=record.error_code,
            error_message=record.error_message,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            extra=record.extra,
            created_at=record.created_at,
        )
        with translate_storage_errors("api_usage.add"):
            self._session.add(model)
            await self._session.flush()

    async def list_since(
        self, owner_id: str, since: datetime, billable_only: bool = True
    ) -> list[APIUsageRecord]:
        conditions = [
            APIUsageModel.owner_id == owner_id,
            APIUsageModel.created_at >= since,
        ]
        if billable_only:
            conditions.append(APIUsageModel.billable.is_(True))

        stmt = (
            select(APIUsageModel)
            .where(and_(*conditions))
            .order_by(APIUsageModel.created_at.asc())
        )
        with translate_storage_errors("api_usage.list_since"):
            result = await self._session.execute(stmt)
            models = result.scalars().all()

        return [
            APIUsageRecord(
                owner_id=m.owner_id,
                api_key_id=m.api_key_id,
                request_id=m.request_id,
                endpoint=m.endpoint,
                method=m.method,
                status_code=m.status_code,
                response_time_ms=m.response_time_ms,
                billable=m.billable,
                error_code=m.error_code,
                error_message=m.error_message,
                ip_address=m.ip_address,
                user_agent=m.user_agent,
                extra=m.extra or {},
                created_at=m.created_at,
            )
            for m in models
        ]


class SqlAlchemyUsageRecorder:
    """UsageRecorder that writes each record in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(self, record: APIUsageRecord) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await APIUsageRepository(session).add(record)
