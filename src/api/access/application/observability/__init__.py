"""Domain probes for the access application layer."""

from access.application.observability.auth_middleware_probe import (
    AuthMiddlewareProbe,
    DefaultAuthMiddlewareProbe,
)
from access.application.observability.quota_service_probe import (
    DefaultQuotaServiceProbe,
    QuotaServiceProbe,
)
from access.application.observability.rate_limiter_probe import (
    DefaultRateLimiterProbe,
    RateLimiterProbe,
)

__all__ = [
    "AuthMiddlewareProbe",
    "DefaultAuthMiddlewareProbe",
    "DefaultQuotaServiceProbe",
    "DefaultRateLimiterProbe",
    "QuotaServiceProbe",
    "RateLimiterProbe",
]
