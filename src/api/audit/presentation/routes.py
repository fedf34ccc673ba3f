"""HTTP routes for reading the audit trail.

Results are always scoped to the authenticated owner.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from access.application.services import Admit
from access.dependencies import require_account_access
from audit.application.services import AuditQueryService
from audit.dependencies import get_audit_query_service
from audit.domain.value_objects import AuditEventType, AuditQuery, AuditSeverity
from audit.presentation.models import AuditPageResponse, AuditReportResponse
from infrastructure.database.exceptions import StorageUnavailableError

DEFAULT_REPORT_DAYS = 30


def _as_utc(value: datetime | None) -> datetime | None:
    """Treat naive query timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


router = APIRouter(
    prefix="/audit",
    tags=["audit"],
)


@router.get("/events", status_code=status.HTTP_200_OK)
async def list_audit_events(
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[AuditQueryService, Depends(get_audit_query_service)],
    event_type: AuditEventType | None = None,
    severity: AuditSeverity | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> AuditPageResponse:
    """Page through the caller's audit events, newest first.

    Raises:
        HTTPException: 422 if start is after end
        HTTPException: 503 if the audit store is unavailable
    """
    try:
        query = AuditQuery(
            actor_id=admission.context.owner_id,
            event_type=event_type,
            severity=severity,
            start=_as_utc(start),
            end=_as_utc(end),
            limit=limit,
            offset=offset,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        )

    try:
        page = await service.query(query)
    except StorageUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Audit store is temporarily unavailable",
        )
    return AuditPageResponse.from_domain(page)


@router.get("/report", status_code=status.HTTP_200_OK)
async def get_audit_report(
    admission: Annotated[Admit, Depends(require_account_access)],
    service: Annotated[AuditQueryService, Depends(get_audit_query_service)],
    start: datetime | None = None,
    end: datetime | None = None,
) -> AuditReportResponse:
    """Compliance report over the caller's events (default: last 30 days).

    Raises:
        HTTPException: 422 if start is after end
        HTTPException: 503 if the audit store is unavailable
    """
    end = _as_utc(end) or datetime.now(UTC)
    start = _as_utc(start) or end - timedelta(days=DEFAULT_REPORT_DAYS)

    try:
        report = await service.generate_report(
            actor_id=admission.context.owner_id, start=start, end=end
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        )
    except StorageUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Audit store is temporarily unavailable",
        )
    return AuditReportResponse.from_domain(report)
