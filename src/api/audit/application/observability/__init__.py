"""Domain probes for the audit application layer."""

from audit.application.observability.audit_logger_probe import (
    AuditLoggerProbe,
    DefaultAuditLoggerProbe,
)
from audit.application.observability.audit_query_probe import (
    AuditQueryProbe,
    DefaultAuditQueryProbe,
)

__all__ = [
    "AuditLoggerProbe",
    "AuditQueryProbe",
    "DefaultAuditLoggerProbe",
    "DefaultAuditQueryProbe",
]
