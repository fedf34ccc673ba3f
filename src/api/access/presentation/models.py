"""Pydantic models for access responses."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from access.application.services import UsageSummary
from access.domain.value_objects import Quota, RateLimitDecision


class QuotaResponse(BaseModel):
    """Current billing window of the caller."""

    plan_tier: str
    used: int
    limit: int = Field(..., description="Monthly limit; -1 means unlimited")
    remaining: int = Field(..., description="Requests left; -1 means unlimited")
    period_start: datetime
    reset_at: datetime
    overage_allowed: bool

    @classmethod
    def from_domain(cls, quota: Quota) -> QuotaResponse:
        return cls(
            plan_tier=quota.plan_tier,
            used=quota.current_usage,
            limit=quota.monthly_limit,
            remaining=quota.remaining,
            period_start=quota.period_start,
            reset_at=quota.period_end,
            overage_allowed=quota.overage_allowed,
        )


class RateLimitResponse(BaseModel):
    limit: int
    remaining: int
    reset_time: int

    @classmethod
    def from_domain(cls, decision: RateLimitDecision) -> RateLimitResponse:
        return cls(
            limit=decision.limit,
            remaining=decision.remaining,
            reset_time=int(decision.reset_time),
        )


class DailyUsageResponse(BaseModel):
    day: date = Field(..., serialization_alias="date")
    count: int
    successful: int
    failed: int


class UsageResponse(BaseModel):
    """Usage statistics for the authenticated owner."""

    quota: QuotaResponse | None
    rate_limit: RateLimitResponse
    period_requests: int
    period_successful: int
    period_failed: int
    daily: list[DailyUsageResponse]

    @classmethod
    def from_summary(
        cls, summary: UsageSummary, rate_limit: RateLimitDecision
    ) -> UsageResponse:
        return cls(
            quota=QuotaResponse.from_domain(summary.quota) if summary.quota else None,
            rate_limit=RateLimitResponse.from_domain(rate_limit),
            period_requests=summary.period_requests,
            period_successful=summary.period_successful,
            period_failed=summary.period_failed,
            daily=[
                DailyUsageResponse(
                    day=d.day, count=d.count, successful=d.successful, failed=d.failed
                )
                for d in summary.daily
            ],
        )
