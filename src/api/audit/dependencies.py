"""Dependency injection for the audit bounded context.

The AuditLogger is process-wide: it owns the in-memory queue and the flush
task started in the application lifespan. Query services are request
scoped and read through the read session.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from audit.application import AuditLogger
from audit.application.observability import AuditQueryProbe, DefaultAuditQueryProbe
from audit.application.services import AuditQueryService
from audit.infrastructure.audit_repository import (
    AuditEventRepository,
    SqlAlchemyAuditSink,
)
from infrastructure.database.dependencies import (
    get_read_session,
    get_write_sessionmaker,
)
from infrastructure.settings import get_audit_settings


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Get the application-scoped audit logger (singleton).

    Each flushed batch runs in its own session from the write engine.

    Returns:
        AuditLogger configured from WARDEN_AUDIT_* settings
    """
    sink = SqlAlchemyAuditSink(session_factory=get_write_sessionmaker())
    settings = get_audit_settings()
    return AuditLogger(
        sink=sink,
        flush_interval_seconds=settings.flush_interval_seconds,
        batch_size=settings.batch_size,
        max_queue_size=settings.max_queue_size,
        failure_threshold=settings.failure_threshold,
    )


def get_audit_query_probe() -> AuditQueryProbe:
    """Get AuditQueryProbe instance."""
    return DefaultAuditQueryProbe()


def get_audit_event_repository(
    session: Annotated[AsyncSession, Depends(get_read_session)],
) -> AuditEventRepository:
    """Get AuditEventRepository bound to a read session."""
    return AuditEventRepository(session=session)


def get_audit_query_service(
    repository: Annotated[AuditEventRepository, Depends(get_audit_event_repository)],
    probe: Annotated[AuditQueryProbe, Depends(get_audit_query_probe)],
) -> AuditQueryService:
    """Get AuditQueryService instance.

    Args:
        repository: Audit event repository on the read session
        probe: Query probe for observability

    Returns:
        AuditQueryService instance
    """
    return AuditQueryService(repository=repository, probe=probe)
