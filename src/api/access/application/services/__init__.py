"""Application services for the access bounded context."""

from access.application.services.auth_middleware import (
    Admit,
    AuthMiddleware,
    AuthorizationContext,
    Deny,
    DenyCode,
    RequestMetadata,
    create_rate_limit_headers,
)
from access.application.services.quota_service import QuotaService
from access.application.services.usage_service import UsageService, UsageSummary

__all__ = [
    "Admit",
    "AuthMiddleware",
    "AuthorizationContext",
    "Deny",
    "DenyCode",
    "QuotaService",
    "RequestMetadata",
    "UsageService",
    "UsageSummary",
    "create_rate_limit_headers",
]
