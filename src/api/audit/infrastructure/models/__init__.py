"""SQLAlchemy models for the audit bounded context."""

from audit.infrastructure.models.audit_event import AuditEventModel

__all__ = ["AuditEventModel"]
