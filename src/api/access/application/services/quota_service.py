"""Quota application service.

Reads the owner's monthly usage window and records usage. The store is
the source of truth: rollover and increments are single conditional
UPDATE statements, never read-modify-write in Python.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from access.application.observability import (
    DefaultQuotaServiceProbe,
    QuotaServiceProbe,
)
from access.domain.value_objects import Quota
from access.ports.repositories import IQuotaRepository
from infrastructure.database.exceptions import DatabaseError


def _utc_now() -> datetime:
    return datetime.now(UTC)


class QuotaService:
    """Application service for per-owner monthly quotas."""

    def __init__(
        self,
        session: AsyncSession,
        quota_repository: IQuotaRepository,
        probe: QuotaServiceProbe | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._session = session
        self._quota_repository = quota_repository
        self._probe = probe or DefaultQuotaServiceProbe()
        self._clock = clock

    async def get_current_quota(self, owner_id: str) -> Quota | None:
        """Return the owner's window for the current period.

        An ended period is rolled over first, so callers never see usage
        from a previous month.

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """
        now = self._clock()
        async with self._session.begin():
            if await self._quota_repository.roll_over(owner_id, now):
                self._probe.period_rolled_over(owner_id)
            quota = await self._quota_repository.get(owner_id)

        if quota is None:
            self._probe.quota_not_found(owner_id)
        return quota

    @staticmethod
    def has_available_quota(quota: Quota | None) -> bool:
        """False for a missing window, otherwise the window's own answer."""
        return quota is not None and quota.has_available_quota

    async def increment_usage(
        self,
        owner_id: str,
        amount: int = 1,
        request_id: str | None = None,
    ) -> bool:
        """Atomically add to the owner's usage.

        Repeating a call with the same request_id counts once. Storage
        failures are logged and reported as False rather than raised, so a
        completed request is never failed by its accounting.

        Raises:
            ValueError: If amount is not positive
        """
        if amount < 1:
            raise ValueError("amount must be >= 1")

        now = self._clock()
        try:
            async with self._session.begin():
                if await self._quota_repository.roll_over(owner_id, now):
                    self._probe.period_rolled_over(owner_id)
                incremented = await self._quota_repository.increment(
                    owner_id, amount, request_id, now
                )
        except (DatabaseError, SQLAlchemyError) as e:
            self._probe.usage_increment_failed(owner_id=owner_id, error=str(e))
            return False

        if not incremented:
            self._probe.quota_not_found(owner_id)
            return False

        self._probe.usage_incremented(
            owner_id=owner_id, amount=amount, request_id=request_id
        )
        return True
