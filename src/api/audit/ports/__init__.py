"""Ports for the audit bounded context."""

from audit.ports.repositories import AuditSink, IAuditEventRepository

__all__ = ["AuditSink", "IAuditEventRepository"]
