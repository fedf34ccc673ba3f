"""PostgreSQL implementation of IQuotaRepository.

Every usage change is one statement evaluated by the database, so two
requests from the same owner can never overwrite each other's increment.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from access.domain.value_objects import Quota, billing_period
from access.infrastructure.models import QuotaUsageReceiptModel, QuotaWindowModel
from access.infrastructure.observability import (
    DefaultQuotaRepositoryProbe,
    QuotaRepositoryProbe,
)
from access.ports.repositories import IQuotaRepository
from infrastructure.database.exceptions import translate_storage_errors


class QuotaRepository(IQuotaRepository):
    """Repository for quota windows backed by quota_windows."""

    def __init__(
        self,
        session: AsyncSession,
        probe: QuotaRepositoryProbe | None = None,
    ) -> None:
        self._session = session
        self._probe = probe or DefaultQuotaRepositoryProbe()

    async def get(self, owner_id: str) -> Quota | None:
        stmt = select(QuotaWindowModel).where(QuotaWindowModel.owner_id == owner_id)
        with translate_storage_errors("quota.get"):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

        if model is None:
            return None
        return self._to_domain(model)

    async def save(self, quota: Quota) -> None:
        """Insert or replace the owner's plan and window."""
        stmt = pg_insert(QuotaWindowModel).values(
            owner_id=quota.owner_id,
            plan_tier=quota.plan_tier,
            monthly_limit=quota.monthly_limit,
            current_usage=quota.current_usage,
            period_start=quota.period_start,
            period_end=quota.period_end,
            overage_allowed=quota.overage_allowed,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[QuotaWindowModel.owner_id],
            set_={
                "plan_tier": stmt.excluded.plan_tier,
                "monthly_limit": stmt.excluded.monthly_limit,
                "current_usage": stmt.excluded.current_usage,
                "period_start": stmt.excluded.period_start,
                "period_end": stmt.excluded.period_end,
                "overage_allowed": stmt.excluded.overage_allowed,
            },
        )
        with translate_storage_errors("quota.save"):
            await self._session.execute(stmt)

    async def roll_over(self, owner_id: str, now: datetime) -> bool:
        """Reset usage and move to the period containing now, if the window ended.

        Concurrent callers race on the WHERE clause; only one sees the old
        period_end and performs the reset. The winner also drops the owner's
        idempotency receipts from before the new period.
        """
        period_start, period_end = billing_period(now)
        stmt = (
            update(QuotaWindowModel)
            .where(
                and_(
                    QuotaWindowModel.owner_id == owner_id,
                    QuotaWindowModel.period_end <= now,
                )
            )
            .values(current_usage=0, period_start=period_start, period_end=period_end)
            .returning(QuotaWindowModel.owner_id)
            .execution_options(synchronize_session=False)
        )
        with translate_storage_errors("quota.roll_over"):
            result = await self._session.execute(stmt)
            if result.scalar_one_or_none() is None:
                return False

            purged = await self._session.execute(
                delete(QuotaUsageReceiptModel).where(
                    and_(
                        QuotaUsageReceiptModel.owner_id == owner_id,
                        QuotaUsageReceiptModel.created_at < period_start,
                    )
                )
            )
        self._probe.receipts_purged(owner_id, purged.rowcount or 0)
        return True

    async def increment(
        self,
        owner_id: str,
        amount: int,
        request_id: str | None,
        now: datetime,
    ) -> bool:
        with translate_storage_errors("quota.increment"):
            if request_id is not None:
                receipt = (
                    pg_insert(QuotaUsageReceiptModel)
                    .values(
                        request_id=request_id,
                        owner_id=owner_id,
                        amount=amount,
                        created_at=now,
                    )
                    .on_conflict_do_nothing(
                        index_elements=[QuotaUsageReceiptModel.request_id]
                    )
                    .returning(QuotaUsageReceiptModel.request_id)
                )
                inserted = (await self._session.execute(receipt)).scalar_one_or_none()
                if inserted is None:
                    self._probe.duplicate_increment_ignored(owner_id, request_id)
                    return True

            stmt = (
                update(QuotaWindowModel)
                .where(QuotaWindowModel.owner_id == owner_id)
                .values(current_usage=QuotaWindowModel.current_usage + amount)
                .returning(QuotaWindowModel.current_usage)
                .execution_options(synchronize_session=False)
            )
            usage = (await self._session.execute(stmt)).scalar_one_or_none()

            if usage is None:
                if request_id is not None:
                    await self._session.execute(
                        delete(QuotaUsageReceiptModel).where(
                            QuotaUsageReceiptModel.request_id == request_id
                        )
                    )
                self._probe.window_missing(owner_id)
                return False

        return True

    @staticmethod
    def _to_domain(model: QuotaWindowModel) -> Quota:
        return Quota(
            owner_id=model.owner_id,
            plan_tier=model.plan_tier,
            monthly_limit=model.monthly_limit,
            current_usage=model.current_usage,
            period_start=model.period_start,
            period_end=model.period_end,
            overage_allowed=model.overage_allowed,
        )
