"""Usage reporting over recorded API requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from access.domain.value_objects import APIUsageRecord, Quota
from access.ports.repositories import IAPIUsageRepository

HISTORY_DAYS = 30


@dataclass
class DailyUsage:
    day: date
    count: int = 0
    successful: int = 0
    failed: int = 0


@dataclass(frozen=True)
class UsageSummary:
    """Billable usage for the current period plus a daily history."""

    quota: Quota | None
    period_requests: int
    period_successful: int
    period_failed: int
    daily: list[DailyUsage] = field(default_factory=list)


def _is_success(record: APIUsageRecord) -> bool:
    return 200 <= record.status_code < 300


class UsageService:
    """Aggregates api_usage rows for one owner."""

    def __init__(self, usage_repository: IAPIUsageRepository):
        self._usage_repository = usage_repository

    async def summarize(
        self, owner_id: str, quota: Quota | None, now: datetime
    ) -> UsageSummary:
        """Summarize billable requests of the last 30 days and the current period."""
        history_start = now - timedelta(days=HISTORY_DAYS)
        since = history_start
        if quota is not None and quota.period_start < since:
            since = quota.period_start

        records = await self._usage_repository.list_since(
            owner_id, since, billable_only=True
        )

        daily: dict[date, DailyUsage] = {}
        for record in records:
            if record.created_at < history_start:
                continue
            day = record.created_at.date()
            bucket = daily.setdefault(day, DailyUsage(day=day))
            bucket.count += 1
            if _is_success(record):
                bucket.successful += 1
            else:
                bucket.failed += 1

        if quota is not None:
            in_period = [
                r
                for r in records
                if quota.period_start <= r.created_at <= quota.period_end
            ]
        else:
            in_period = [r for r in records if r.created_at >= history_start]
        successful = sum(1 for r in in_period if _is_success(r))

        return UsageSummary(
            quota=quota,
            period_requests=len(in_period),
            period_successful=successful,
            period_failed=len(in_period) - successful,
            daily=[daily[day] for day in sorted(daily)],
        )
