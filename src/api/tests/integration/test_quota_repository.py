"""Integration tests for quota windows under concurrent use."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from access.domain.value_objects import Quota, billing_period
from access.infrastructure.models import QuotaUsageReceiptModel
from access.infrastructure.quota_repository import QuotaRepository

pytestmark = pytest.mark.integration

OWNER = "owner-quota"


async def _seed(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime,
    current_usage: int = 0,
) -> None:
    period_start, period_end = billing_period(now)
    async with session_factory() as session, session.begin():
        await QuotaRepository(session).save(
            Quota(
                owner_id=OWNER,
                plan_tier="starter",
                monthly_limit=1000,
                current_usage=current_usage,
                period_start=period_start,
                period_end=period_end,
            )
        )


async def _usage(session_factory: async_sessionmaker[AsyncSession]) -> int:
    async with session_factory() as session:
        quota = await QuotaRepository(session).get(OWNER)
    assert quota is not None
    return quota.current_usage


class TestQuotaIncrement:
    @pytest.mark.asyncio
    async def test_concurrent_increments_are_all_counted(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        now = datetime.now(UTC)
        await _seed(session_factory, now)

        async def increment(n: int) -> bool:
            async with session_factory() as session, session.begin():
                return await QuotaRepository(session).increment(
                    OWNER, amount=1, request_id=f"req-{n}", now=now
                )

        results = await asyncio.gather(*(increment(n) for n in range(15)))

        assert all(results)
        assert await _usage(session_factory) == 15

    @pytest.mark.asyncio
    async def test_repeated_request_id_counts_once(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        now = datetime.now(UTC)
        await _seed(session_factory, now)

        for _ in range(3):
            async with session_factory() as session, session.begin():
                await QuotaRepository(session).increment(
                    OWNER, amount=2, request_id="req-retry", now=now
                )

        assert await _usage(session_factory) == 2

    @pytest.mark.asyncio
    async def test_missing_window_leaves_no_receipt(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        now = datetime.now(UTC)

        async with session_factory() as session, session.begin():
            assert (
                await QuotaRepository(session).increment(
                    OWNER, amount=1, request_id="req-early", now=now
                )
                is False
            )

        await _seed(session_factory, now)
        async with session_factory() as session, session.begin():
            await QuotaRepository(session).increment(
                OWNER, amount=1, request_id="req-early", now=now
            )

        assert await _usage(session_factory) == 1


class TestQuotaRollOver:
    @pytest.mark.asyncio
    async def test_expired_window_resets_once(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        last_month = datetime.now(UTC) - timedelta(days=40)
        await _seed(session_factory, last_month, current_usage=900)
        now = datetime.now(UTC)

        async def roll() -> bool:
            async with session_factory() as session, session.begin():
                return await QuotaRepository(session).roll_over(OWNER, now)

        results = await asyncio.gather(roll(), roll(), roll())

        assert sorted(results) == [False, False, True]
        async with session_factory() as session:
            quota = await QuotaRepository(session).get(OWNER)
        assert quota is not None
        assert quota.current_usage == 0
        assert (quota.period_start, quota.period_end) == billing_period(now)

    @pytest.mark.asyncio
    async def test_current_window_is_left_alone(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        now = datetime.now(UTC)
        await _seed(session_factory, now, current_usage=7)

        async with session_factory() as session, session.begin():
            assert await QuotaRepository(session).roll_over(OWNER, now) is False

        assert await _usage(session_factory) == 7

    @pytest.mark.asyncio
    async def test_roll_over_drops_receipts_from_earlier_periods(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        last_month = datetime.now(UTC) - timedelta(days=40)
        now = datetime.now(UTC)
        await _seed(session_factory, last_month)
        async with session_factory() as session, session.begin():
            repository = QuotaRepository(session)
            await repository.increment(
                OWNER, amount=1, request_id="req-last-month", now=last_month
            )
            await repository.increment(OWNER, amount=1, request_id="req-today", now=now)

        async with session_factory() as session, session.begin():
            assert await QuotaRepository(session).roll_over(OWNER, now) is True

        async with session_factory() as session:
            remaining = (
                await session.execute(select(QuotaUsageReceiptModel.request_id))
            ).scalars().all()
        assert remaining == ["req-today"]
