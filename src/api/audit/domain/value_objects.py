"""Value objects for the audit domain."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from ulid import ULID

ANONYMOUS_ACTOR = "anonymous"
SYSTEM_ACTOR = "system"


class AuditEventType(StrEnum):
    """Closed set of audit event types, namespaced by area."""

    # Authentication
    AUTH_LOGIN = "auth.login"
    AUTH_LOGOUT = "auth.logout"
    AUTH_FAILED = "auth.failed"
    AUTH_TOKEN_REFRESH = "auth.token_refresh"
    AUTH_GOOGLE_LINK = "auth.google_link"
    AUTH_GOOGLE_UNLINK = "auth.google_unlink"

    # API key lifecycle
    CREDENTIAL_API_KEY_CREATED = "credential.api_key_created"
    CREDENTIAL_API_KEY_REVOKED = "credential.api_key_revoked"
    CREDENTIAL_API_KEY_ROTATED = "credential.api_key_rotated"
    CREDENTIAL_API_KEY_PURGED = "credential.api_key_purged"
    CREDENTIAL_SERVICE_ACCOUNT_STORED = "credential.service_account_stored"

    # Data operations
    DATA_VIEW = "data.view"
    DATA_MODIFY = "data.modify"
    DATA_EXPORT = "data.export"
    DATA_DELETE = "data.delete"

    # Admin operations
    ADMIN_ACCESS = "admin.access"
    ADMIN_USER_MODIFY = "admin.user_modify"
    ADMIN_SETTINGS_CHANGE = "admin.settings_change"

    # Security
    SECURITY_SUSPICIOUS_ACTIVITY = "security.suspicious_activity"
    SECURITY_RATE_LIMIT_EXCEEDED = "security.rate_limit_exceeded"
    SECURITY_INVALID_TOKEN = "security.invalid_token"
    SECURITY_PERMISSION_DENIED = "security.permission_denied"
    SECURITY_DECRYPTION_FAILED = "security.decryption_failed"

    # API
    API_CALL = "api.call"
    API_ERROR = "api.error"
    API_RATE_LIMIT = "api.rate_limit"
    API_QUOTA_EXCEEDED = "api.quota_exceeded"

    # Workspace
    WORKSPACE_INSTALL = "workspace.install"
    WORKSPACE_UNINSTALL = "workspace.uninstall"
    WORKSPACE_USER_ADD = "workspace.user_add"
    WORKSPACE_USER_REMOVE = "workspace.user_remove"

    @property
    def namespace(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def is_security_event(self) -> bool:
        return self.namespace == "security"


class AuditSeverity(StrEnum):
    """Audit severity levels, lowest first."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AuditEvent:
    """A single immutable audit trail entry.

    Metadata is expected to be sanitized already; use AuditEvent.create()
    rather than the constructor so that happens in one place.
    """

    id: str
    event_type: AuditEventType
    severity: AuditSeverity
    actor_id: str
    created_at: datetime
    success: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)
    resource_type: str | None = None
    resource_id: str | None = None
    workspace_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    error_message: str | None = None

    @classmethod
    def create(
        cls,
        event_type: AuditEventType,
        severity: AuditSeverity = AuditSeverity.INFO,
        actor_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        success: bool = True,
        resource_type: str | None = None,
        resource_id: str | None = None,
        workspace_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        request_id: str | None = None,
        error_message: str | None = None,
    ) -> AuditEvent:
        """Build an event with a fresh id, current timestamp and redacted metadata."""
        from audit.domain.sanitization import sanitize_metadata

        return cls(
            id=str(ULID()),
            event_type=AuditEventType(event_type),
            severity=AuditSeverity(severity),
            actor_id=actor_id or ANONYMOUS_ACTOR,
            created_at=datetime.now(UTC),
            success=success,
            metadata=sanitize_metadata(metadata or {}),
            resource_type=resource_type,
            resource_id=resource_id,
            workspace_id=workspace_id,
            ip_address=ip_address,
            user_agent=user_agent,
            request_id=request_id,
            error_message=error_message,
        )


@dataclass(frozen=True)
class AuditQuery:
    """Filters for reading the audit trail. All filters combine with AND."""

    actor_id: str | None = None
    event_type: AuditEventType | None = None
    severity: AuditSeverity | None = None
    workspace_id: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int = 100
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.start and self.end and self.start > self.end:
            raise ValueError("start must not be after end")


@dataclass(frozen=True)
class AuditPage:
    """One page of query results, newest first."""

    events: list[AuditEvent]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.total > self.offset + self.limit
