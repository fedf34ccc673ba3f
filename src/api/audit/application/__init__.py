"""Audit application layer."""

from audit.application.audit_logger import AuditLogger, AuditLoggerHealth

__all__ = ["AuditLogger", "AuditLoggerHealth"]
