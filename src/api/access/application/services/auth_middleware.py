"""Per-request admission for the programmatic API.

The pipeline is extract key -> validate -> access enabled -> quota (when
required) -> rate limit. The first failing step ends in a Deny carrying a
stable code and HTTP status. An Admit carries the authorization context
plus two deferred actions the caller runs after the protected work:
log_request and increment_quota.
"""

from __future__ import annotations

import math
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError
from ulid import ULID

from access.application.observability import (
    AuthMiddlewareProbe,
    DefaultAuthMiddlewareProbe,
)
from access.application.rate_limiter import RateLimiterService
from access.application.services.quota_service import QuotaService
from access.domain.value_objects import (
    APIUsageRecord,
    PlanTier,
    Quota,
    RateLimitDecision,
)
from access.ports.repositories import UsageRecorder
from audit.domain.value_objects import ANONYMOUS_ACTOR, AuditEventType, AuditSeverity
from credentials.application.security import PREFIX_LENGTH
from infrastructure.database.exceptions import DatabaseError

if TYPE_CHECKING:
    from audit.application.audit_logger import AuditLogger
    from credentials.application.services import APIKeyService

BEARER_PREFIX = "Bearer "
UNKNOWN = "unknown"
DEFAULT_TIER = PlanTier.PAYG


class DenyCode(StrEnum):
    """Stable machine-readable denial codes returned to callers."""

    MISSING_API_KEY = "MISSING_API_KEY"
    INVALID_API_KEY = "INVALID_API_KEY"
    API_ACCESS_DISABLED = "API_ACCESS_DISABLED"
    NO_QUOTA = "NO_QUOTA"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    AUTH_UNAVAILABLE = "AUTH_UNAVAILABLE"


def extract_api_key(authorization: str | None) -> str | None:
    """Read a key from an Authorization header value.

    Accepts ``Bearer <key>`` or the bare key.
    """
    if not authorization:
        return None
    if authorization.startswith(BEARER_PREFIX):
        key = authorization[len(BEARER_PREFIX):].strip()
    else:
        key = authorization.strip()
    return key or None


def client_ip(headers: Mapping[str, str]) -> str:
    """First x-forwarded-for hop, then x-real-ip, else "unknown"."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return UNKNOWN


@dataclass(frozen=True)
class RequestMetadata:
    """The parts of an inbound request the admission pipeline needs."""

    authorization: str | None
    endpoint: str
    method: str
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN
    request_id: str = field(default_factory=lambda: str(ULID()))

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        endpoint: str,
        method: str,
        request_id: str | None = None,
    ) -> RequestMetadata:
        """Build from a case-insensitive header mapping."""
        return cls(
            authorization=headers.get("authorization"),
            endpoint=endpoint,
            method=method.upper(),
            ip_address=client_ip(headers),
            user_agent=headers.get("user-agent") or UNKNOWN,
            request_id=request_id or str(ULID()),
        )


def create_rate_limit_headers(rate_limit: RateLimitDecision) -> dict[str, str]:
    """X-RateLimit-* headers for a rate-limit decision."""
    return {
        "X-RateLimit-Limit": str(rate_limit.limit),
        "X-RateLimit-Remaining": str(rate_limit.remaining),
        "X-RateLimit-Reset": str(math.ceil(rate_limit.reset_time)),
    }


@dataclass(frozen=True)
class Deny:
    """Terminal refusal of a request."""

    code: DenyCode
    status_code: int
    error: str
    message: str
    headers: dict[str, str] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "code": self.code.value,
            **self.details,
        }


@dataclass(frozen=True)
class AuthorizationContext:
    """Identity and limits of an admitted caller."""

    owner_id: str
    api_key_id: str
    is_developer: bool
    quota: Quota | None
    rate_limit: RateLimitDecision
    request_id: str


@dataclass(frozen=True)
class Admit:
    """Admission plus the deferred actions to run after the protected work.

    ``log_request(status_code, **extra)`` records the true outcome of the
    request and never raises. ``increment_quota(amount=1)`` adds to the
    owner's monthly usage once per request and returns False on failure.
    """

    context: AuthorizationContext
    log_request: Callable[..., Awaitable[None]]
    increment_quota: Callable[..., Awaitable[bool]]


class AuthMiddleware:
    """Composition root of credential validation, quota and rate limiting."""

    def __init__(
        self,
        api_key_service: APIKeyService,
        quota_service: QuotaService,
        rate_limiter: RateLimiterService,
        usage_recorder: UsageRecorder,
        audit: AuditLogger | None = None,
        probe: AuthMiddlewareProbe | None = None,
    ):
        """Initialize the middleware.

        Args:
            api_key_service: Validates presented keys
            quota_service: Reads and increments monthly usage
            rate_limiter: Process-wide tier-aware rate limiter
            usage_recorder: Writes api_usage rows in its own transaction
            audit: Optional audit logger for denials
            probe: Optional domain probe for observability
        """
        self._api_key_service = api_key_service
        self._quota_service = quota_service
        self._rate_limiter = rate_limiter
        self._usage_recorder = usage_recorder
        self._audit = audit
        self._probe = probe or DefaultAuthMiddlewareProbe()

    async def authenticate(
        self,
        request: RequestMetadata,
        require_quota: bool = True,
        billable: bool = True,
    ) -> Admit | Deny:
        """Run the admission pipeline for one request.

        Storage failures produce AUTH_UNAVAILABLE (503) rather than a
        security denial.
        """
        started = time.perf_counter()

        api_key = extract_api_key(request.authorization)
        if api_key is None:
            self._audit_denial(
                request,
                AuditEventType.AUTH_FAILED,
                {"reason": "Missing API key", "endpoint": request.endpoint},
            )
            return self._deny(
                request,
                Deny(
                    code=DenyCode.MISSING_API_KEY,
                    status_code=401,
                    error="Authentication required",
                    message="Missing API key in Authorization header",
                    headers={"WWW-Authenticate": 'Bearer realm="API"'},
                ),
            )

        try:
            credential = await self._api_key_service.validate(api_key)
        except DatabaseError as e:
            return self._unavailable(request, e)

        if credential is None:
            self._audit_denial(
                request,
                AuditEventType.AUTH_FAILED,
                {
                    "reason": "Invalid API key",
                    "endpoint": request.endpoint,
                    "key_prefix": api_key[:PREFIX_LENGTH],
                },
            )
            return self._deny(
                request,
                Deny(
                    code=DenyCode.INVALID_API_KEY,
                    status_code=401,
                    error="Authentication failed",
                    message="Invalid or expired API key",
                ),
            )

        owner_id = credential.owner_id.value
        api_key_id = credential.api_key_id.value

        if not credential.api_enabled and not credential.is_developer:
            self._audit_denial(
                request,
                AuditEventType.SECURITY_PERMISSION_DENIED,
                {"reason": "API access disabled", "endpoint": request.endpoint},
                actor_id=owner_id,
            )
            return self._deny(
                request,
                Deny(
                    code=DenyCode.API_ACCESS_DISABLED,
                    status_code=403,
                    error="Access denied",
                    message="API access is not enabled for your account",
                ),
                owner_id=owner_id,
            )

        quota: Quota | None = None
        if require_quota:
            try:
                quota = await self._quota_service.get_current_quota(owner_id)
            except DatabaseError as e:
                return self._unavailable(request, e)

            if quota is None:
                self._audit_denial(
                    request,
                    AuditEventType.SECURITY_PERMISSION_DENIED,
                    {"reason": "No active quota", "endpoint": request.endpoint},
                    actor_id=owner_id,
                )
                return self._deny(
                    request,
                    Deny(
                        code=DenyCode.NO_QUOTA,
                        status_code=403,
                        error="Configuration error",
                        message="No active quota found for your account. Please contact support.",
                    ),
                    owner_id=owner_id,
                )

            if not quota.has_available_quota:
                await self._record_usage(
                    self._usage_record(
                        request,
                        owner_id,
                        api_key_id,
                        started,
                        status_code=429,
                        billable=False,
                        error_code=DenyCode.QUOTA_EXCEEDED.value,
                        error_message="Monthly quota exceeded",
                    )
                )
                self._audit_denial(
                    request,
                    AuditEventType.API_QUOTA_EXCEEDED,
                    {
                        "used": quota.current_usage,
                        "limit": quota.monthly_limit,
                        "endpoint": request.endpoint,
                    },
                    actor_id=owner_id,
                )
                return self._deny(
                    request,
                    Deny(
                        code=DenyCode.QUOTA_EXCEEDED,
                        status_code=429,
                        error="Quota exceeded",
                        message=(
                            f"You have used {quota.current_usage} of "
                            f"{quota.monthly_limit} requests this month"
                        ),
                        headers={
                            "X-RateLimit-Limit": str(quota.monthly_limit),
                            "X-RateLimit-Remaining": "0",
                            "X-RateLimit-Reset": str(int(quota.period_end.timestamp())),
                        },
                        details={
                            "quota": {
                                "used": quota.current_usage,
                                "limit": quota.monthly_limit,
                                "remaining": quota.remaining,
                                "reset_at": quota.period_end.isoformat(),
                            }
                        },
                    ),
                    owner_id=owner_id,
                )

        tier = quota.plan_tier if quota is not None else DEFAULT_TIER
        decision = self._rate_limiter.check(owner_id, tier)
        if decision.limited:
            await self._record_usage(
                self._usage_record(
                    request,
                    owner_id,
                    api_key_id,
                    started,
                    status_code=429,
                    billable=False,
                    error_code=DenyCode.RATE_LIMIT_EXCEEDED.value,
                    error_message=f"Rate limit exceeded ({decision.limit} requests per window)",
                )
            )
            violations = self._rate_limiter.record_violation(owner_id)
            if violations is not None:
                self._audit_denial(
                    request,
                    AuditEventType.SECURITY_RATE_LIMIT_EXCEEDED,
                    {
                        "endpoint": request.endpoint,
                        "tier": tier,
                        "violations_last_hour": violations,
                    },
                    actor_id=owner_id,
                )
            return self._deny(
                request,
                Deny(
                    code=DenyCode.RATE_LIMIT_EXCEEDED,
                    status_code=429,
                    error="Rate limit exceeded",
                    message=(
                        f"Rate limit exceeded for {tier} tier "
                        f"({decision.limit} requests per window)"
                    ),
                    headers={
                        **create_rate_limit_headers(decision),
                        "Retry-After": str(decision.retry_after),
                    },
                    details={"retry_after": decision.retry_after},
                ),
                owner_id=owner_id,
            )

        context = AuthorizationContext(
            owner_id=owner_id,
            api_key_id=api_key_id,
            is_developer=credential.is_developer,
            quota=quota,
            rate_limit=decision,
            request_id=request.request_id,
        )

        async def log_request(status_code: int, **extra: Any) -> None:
            error_code = extra.pop("error_code", None)
            error_message = extra.pop("error_message", None)
            await self._record_usage(
                self._usage_record(
                    request,
                    owner_id,
                    api_key_id,
                    started,
                    status_code=status_code,
                    billable=billable,
                    error_code=error_code,
                    error_message=error_message,
                    extra=extra,
                )
            )

        async def increment_quota(amount: int = 1) -> bool:
            return await self._quota_service.increment_usage(
                owner_id, amount=amount, request_id=request.request_id
            )

        self._probe.request_admitted(owner_id, api_key_id, request.endpoint)
        return Admit(
            context=context,
            log_request=log_request,
            increment_quota=increment_quota,
        )

    def _deny(self, request: RequestMetadata, deny: Deny, owner_id: str | None = None) -> Deny:
        self._probe.request_denied(
            code=deny.code.value,
            status_code=deny.status_code,
            endpoint=request.endpoint,
            owner_id=owner_id,
        )
        return deny

    def _unavailable(self, request: RequestMetadata, error: Exception) -> Deny:
        self._probe.auth_unavailable(endpoint=request.endpoint, error=str(error))
        if self._audit is not None:
            self._audit.log(
                event_type=AuditEventType.API_ERROR,
                severity=AuditSeverity.ERROR,
                actor_id=ANONYMOUS_ACTOR,
                metadata={"reason": "Credential store unavailable", "endpoint": request.endpoint},
                success=False,
                ip_address=request.ip_address,
                user_agent=request.user_agent,
                request_id=request.request_id,
                error_message=str(error),
            )
        return self._deny(
            request,
            Deny(
                code=DenyCode.AUTH_UNAVAILABLE,
                status_code=503,
                error="Service unavailable",
                message="Authentication is temporarily unavailable. Please retry.",
                headers={"Retry-After": "1"},
            ),
        )

    def _audit_denial(
        self,
        request: RequestMetadata,
        event_type: AuditEventType,
        metadata: dict[str, Any],
        actor_id: str | None = None,
    ) -> None:
        if self._audit is None:
            return
        self._audit.log(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            metadata=metadata,
            success=False,
            ip_address=request.ip_address,
            user_agent=request.user_agent,
            request_id=request.request_id,
        )

    @staticmethod
    def _usage_record(
        request: RequestMetadata,
        owner_id: str,
        api_key_id: str,
        started: float,
        status_code: int,
        billable: bool,
        error_code: str | None = None,
        error_message: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> APIUsageRecord:
        return APIUsageRecord(
            owner_id=owner_id,
            api_key_id=api_key_id,
            request_id=request.request_id,
            endpoint=request.endpoint,
            method=request.method,
            status_code=status_code,
            response_time_ms=int((time.perf_counter() - started) * 1000),
            billable=billable,
            error_code=error_code,
            error_message=error_message,
            ip_address=request.ip_address,
            user_agent=request.user_agent,
            extra=extra or {},
        )

    async def _record_usage(self, record: APIUsageRecord) -> None:
        try:
            await self._usage_recorder.record(record)
        except (DatabaseError, SQLAlchemyError) as e:
            self._probe.usage_record_failed(request_id=record.request_id, error=str(e))
