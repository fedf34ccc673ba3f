"""Pydantic models for audit trail responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from audit.application.services import AuditReport
from audit.domain.value_objects import AuditEvent, AuditPage


class AuditEventResponse(BaseModel):
    """One audit event. Metadata is already redacted."""

    id: str
    event_type: str
    severity: str
    actor_id: str
    success: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    resource_type: str | None = None
    resource_id: str | None = None
    workspace_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    error_message: str | None = None
    created_at: datetime

    @classmethod
    def from_domain(cls, event: AuditEvent) -> AuditEventResponse:
        return cls(
            id=event.id,
            event_type=event.event_type.value,
            severity=event.severity.value,
            actor_id=event.actor_id,
            success=event.success,
            metadata=event.metadata,
            resource_type=event.resource_type,
            resource_id=event.resource_id,
            workspace_id=event.workspace_id,
            ip_address=event.ip_address,
            user_agent=event.user_agent,
            request_id=event.request_id,
            error_message=event.error_message,
            created_at=event.created_at,
        )


class AuditPageResponse(BaseModel):
    events: list[AuditEventResponse]
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def from_domain(cls, page: AuditPage) -> AuditPageResponse:
        return cls(
            events=[AuditEventResponse.from_domain(e) for e in page.events],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        )


class EventCount(BaseModel):
    event_type: str
    count: int


class AuditReportResponse(BaseModel):
    """Compliance summary of the caller's audit trail."""

    start: datetime
    end: datetime
    total_events: int
    by_severity: dict[str, int]
    by_event_type: dict[str, int]
    failed_operations: int
    security_events: int
    top_events: list[EventCount]
    security_incidents: list[AuditEventResponse]
    truncated: bool

    @classmethod
    def from_domain(cls, report: AuditReport) -> AuditReportResponse:
        return cls(
            start=report.start,
            end=report.end,
            total_events=report.total_events,
            by_severity=report.by_severity,
            by_event_type=report.by_event_type,
            failed_operations=report.failed_operations,
            security_events=report.security_events,
            top_events=[
                EventCount(event_type=event_type, count=count)
                for event_type, count in report.top_events
            ],
            security_incidents=[
                AuditEventResponse.from_domain(e) for e in report.security_incidents
            ],
            truncated=report.truncated,
        )
