"""Audit domain layer."""

from audit.domain.sanitization import REDACTED, sanitize_metadata
from audit.domain.value_objects import (
    ANONYMOUS_ACTOR,
    SYSTEM_ACTOR,
    AuditEvent,
    AuditEventType,
    AuditPage,
    AuditQuery,
    AuditSeverity,
)

__all__ = [
    "ANONYMOUS_ACTOR",
    "AuditEvent",
    "AuditEventType",
    "AuditPage",
    "AuditQuery",
    "AuditSeverity",
    "REDACTED",
    "SYSTEM_ACTOR",
    "sanitize_metadata",
]
