"""Value objects for the access domain."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

UNLIMITED = -1


class PlanTier(StrEnum):
    """Billing plan tiers known to the rate limiter."""

    STARTER = "starter"
    GROWTH = "growth"
    SCALE = "scale"
    ENTERPRISE = "enterprise"
    PAYG = "payg"


@dataclass(frozen=True)
class Quota:
    """An owner's usage window for the current billing period.

    A monthly_limit of UNLIMITED (-1) means the plan has no cap.
    """

    owner_id: str
    plan_tier: str
    monthly_limit: int
    current_usage: int
    period_start: datetime
    period_end: datetime
    overage_allowed: bool = False

    @property
    def is_unlimited(self) -> bool:
        return self.monthly_limit == UNLIMITED

    @property
    def has_available_quota(self) -> bool:
        """True when unlimited, overage is allowed, or usage is under the limit."""
        if self.is_unlimited or self.overage_allowed:
            return True
        return self.current_usage < self.monthly_limit

    @property
    def remaining(self) -> int:
        """Requests left this period; -1 when unlimited."""
        if self.is_unlimited:
            return UNLIMITED
        return max(0, self.monthly_limit - self.current_usage)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one sliding-window check.

    reset_time is a Unix timestamp in seconds: when the oldest hit in the
    window expires. retry_after is whole seconds and is 0 when admitted.
    """

    limited: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: int = 0


@dataclass(frozen=True)
class APIUsageRecord:
    """One row of per-request usage, written after admission or on deny."""

    owner_id: str
    api_key_id: str
    request_id: str
    endpoint: str
    method: str
    status_code: int
    response_time_ms: int
    billable: bool = True
    error_code: str | None = None
    error_message: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def billing_period(now: datetime) -> tuple[datetime, datetime]:
    """Calendar-month period containing now, in UTC."""
    now = now.astimezone(UTC)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end
