"""Dependency injection for the access bounded context.

The rate limiter and usage recorder are application scoped. The
middleware and quota service are request scoped and share the request's
write session with the credential store.
"""

from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from access.application.observability import (
    AuthMiddlewareProbe,
    DefaultAuthMiddlewareProbe,
    DefaultQuotaServiceProbe,
    QuotaServiceProbe,
)
from access.application.rate_limiter import (
    RateLimiterService,
    RateLimitViolationTracker,
)
from access.application.services import (
    Admit,
    AuthMiddleware,
    Deny,
    QuotaService,
    RequestMetadata,
    UsageService,
)
from access.infrastructure.quota_repository import QuotaRepository
from access.infrastructure.usage_repository import (
    APIUsageRepository,
    SqlAlchemyUsageRecorder,
)
from access.ports.repositories import UsageRecorder
from access.presentation.errors import AccessDeniedError
from audit.application import AuditLogger
from audit.dependencies import get_audit_logger
from credentials.application.services import APIKeyService
from credentials.dependencies import get_api_key_service
from infrastructure.database.dependencies import (
    get_read_session,
    get_write_session,
    get_write_sessionmaker,
)
from infrastructure.settings import get_rate_limit_settings


@lru_cache
def get_rate_limiter_service() -> RateLimiterService:
    """Get the application-scoped rate limiter (singleton).

    Buckets live in this instance, so every request in the process must
    share it.
    """
    settings = get_rate_limit_settings()
    return RateLimiterService(
        tier_limits=settings.tier_limits,
        window_seconds=settings.window_seconds,
        eviction_interval_seconds=settings.eviction_interval_seconds,
        eviction_grace_seconds=settings.eviction_grace_seconds,
        violation_tracker=RateLimitViolationTracker(
            threshold=settings.audit_threshold
        ),
    )


@lru_cache
def get_usage_recorder() -> UsageRecorder:
    """Get the application-scoped usage recorder."""
    return SqlAlchemyUsageRecorder(session_factory=get_write_sessionmaker())


def get_quota_service_probe() -> QuotaServiceProbe:
    return DefaultQuotaServiceProbe()


def get_auth_middleware_probe() -> AuthMiddlewareProbe:
    return DefaultAuthMiddlewareProbe()


def get_quota_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> QuotaRepository:
    """Get QuotaRepository instance."""
    return QuotaRepository(session=session)


def get_quota_service(
    repository: Annotated[QuotaRepository, Depends(get_quota_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[QuotaServiceProbe, Depends(get_quota_service_probe)],
) -> QuotaService:
    """Get QuotaService instance.

    Args:
        repository: Quota repository (shares session via FastAPI dependency caching)
        session: Database session for transaction management
        probe: Quota probe for observability

    Returns:
        QuotaService instance
    """
    return QuotaService(session=session, quota_repository=repository, probe=probe)


def get_usage_service(
    session: Annotated[AsyncSession, Depends(get_read_session)],
) -> UsageService:
    """Get UsageService reading through the read session."""
    return UsageService(usage_repository=APIUsageRepository(session=session))


def get_auth_middleware(
    api_key_service: Annotated[APIKeyService, Depends(get_api_key_service)],
    quota_service: Annotated[QuotaService, Depends(get_quota_service)],
    rate_limiter: Annotated[RateLimiterService, Depends(get_rate_limiter_service)],
    usage_recorder: Annotated[UsageRecorder, Depends(get_usage_recorder)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
    probe: Annotated[AuthMiddlewareProbe, Depends(get_auth_middleware_probe)],
) -> AuthMiddleware:
    """Get AuthMiddleware composed from the credential, quota and rate-limit services."""
    return AuthMiddleware(
        api_key_service=api_key_service,
        quota_service=quota_service,
        rate_limiter=rate_limiter,
        usage_recorder=usage_recorder,
        audit=audit,
        probe=probe,
    )


def require_api_key(
    require_quota: bool = True,
    billable: bool = True,
) -> Callable[..., Awaitable[Admit]]:
    """Build a dependency that admits the request or raises AccessDeniedError.

    Args:
        require_quota: Check the owner's monthly quota before admitting
        billable: Whether usage recorded via log_request is billable

    Returns:
        FastAPI dependency resolving to the Admit decision
    """

    async def dependency(
        request: Request,
        middleware: Annotated[AuthMiddleware, Depends(get_auth_middleware)],
    ) -> Admit:
        metadata = RequestMetadata.from_headers(
            request.headers,
            endpoint=request.url.path,
            method=request.method,
        )
        result = await middleware.authenticate(
            metadata, require_quota=require_quota, billable=billable
        )
        if isinstance(result, Deny):
            raise AccessDeniedError(result)
        return result

    return dependency


# Account management endpoints: authenticated, not metered
require_account_access = require_api_key(require_quota=False, billable=False)
