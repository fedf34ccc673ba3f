"""Application services for the audit bounded context."""

from audit.application.services.audit_query_service import (
    AuditQueryService,
    AuditReport,
)

__all__ = ["AuditQueryService", "AuditReport"]
