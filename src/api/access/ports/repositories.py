"""Repository protocols (ports) for the access bounded context."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from access.domain.value_objects import APIUsageRecord, Quota


@runtime_checkable
class IQuotaRepository(Protocol):
    """Persistence of per-owner quota windows.

    Usage changes are single conditional UPDATE statements so concurrent
    requests never lose increments.
    """

    async def get(self, owner_id: str) -> Quota | None:
        """Read the owner's quota window."""
        ...

    async def save(self, quota: Quota) -> None:
        """Insert or replace an owner's plan window."""
        ...

    async def roll_over(self, owner_id: str, now: datetime) -> bool:
        """Start a new period if the current one has ended.

        Returns:
            True if this call performed the rollover, which also discards
            idempotency receipts from earlier periods
        """
        ...

    async def increment(
        self,
        owner_id: str,
        amount: int,
        request_id: str | None,
        now: datetime,
    ) -> bool:
        """Atomically add amount to current usage.

        When request_id is given, a repeated call with the same id adds
        nothing and returns True.

        Returns:
            False if the owner has no quota window
        """
        ...


@runtime_checkable
class IAPIUsageRepository(Protocol):
    """Per-request usage records."""

    async def add(self, record: APIUsageRecord) -> None:
        """Insert a usage record. Does not commit."""
        ...

    async def list_since(
        self, owner_id: str, since: datetime, billable_only: bool = True
    ) -> list[APIUsageRecord]:
        """Records of one owner created at or after since, oldest first."""
        ...


@runtime_checkable
class UsageRecorder(Protocol):
    """Write side used by admitted requests after they complete.

    Implementations own their transaction, since they run after the
    request's own work.
    """

    async def record(self, record: APIUsageRecord) -> None:
        ...
