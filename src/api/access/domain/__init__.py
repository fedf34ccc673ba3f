"""Access domain layer."""

from access.domain.value_objects import (
    UNLIMITED,
    APIUsageRecord,
    PlanTier,
    Quota,
    RateLimitDecision,
    billing_period,
)

__all__ = [
    "APIUsageRecord",
    "PlanTier",
    "Quota",
    "RateLimitDecision",
    "UNLIMITED",
    "billing_period",
]
