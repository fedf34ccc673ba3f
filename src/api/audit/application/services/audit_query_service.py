"""Read-side queries and reports over the audit trail."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from audit.application.observability import (
    AuditQueryProbe,
    DefaultAuditQueryProbe,
)
from audit.domain.value_objects import AuditEvent, AuditPage, AuditQuery
from audit.ports.repositories import IAuditEventRepository

REPORT_EVENT_LIMIT = 10_000
TOP_EVENT_COUNT = 10


@dataclass(frozen=True)
class AuditReport:
    """Summary of one actor's audit trail over a period."""

    actor_id: str
    start: datetime
    end: datetime
    total_events: int
    by_severity: dict[str, int]
    by_event_type: dict[str, int]
    failed_operations: int
    security_events: int
    top_events: list[tuple[str, int]] = field(default_factory=list)
    security_incidents: list[AuditEvent] = field(default_factory=list)
    truncated: bool = False


class AuditQueryService:
    """Application service for reading persisted audit events.

    Not on the write hot path; uses whatever session the repository holds.
    """

    def __init__(
        self,
        repository: IAuditEventRepository,
        probe: AuditQueryProbe | None = None,
    ) -> None:
        self._repository = repository
        self._probe = probe or DefaultAuditQueryProbe()

    async def query(self, query: AuditQuery) -> AuditPage:
        """Return one page of events matching the filters."""
        page = await self._repository.query(query)
        self._probe.events_queried(
            actor_id=query.actor_id,
            count=len(page.events),
            total=page.total,
        )
        return page

    async def generate_report(
        self, actor_id: str, start: datetime, end: datetime
    ) -> AuditReport:
        """Aggregate an actor's events between ``start`` and ``end``.

        Reads at most REPORT_EVENT_LIMIT events; ``truncated`` is set when
        the limit was reached.

        Raises:
            ValueError: If start is after end
        """
        if start > end:
            raise ValueError("start must not be after end")

        events = await self._repository.list_between(
            actor_id=actor_id, start=start, end=end, limit=REPORT_EVENT_LIMIT
        )

        by_severity = Counter(event.severity.value for event in events)
        by_event_type = Counter(event.event_type.value for event in events)
        security_incidents = [e for e in events if e.event_type.is_security_event]

        report = AuditReport(
            actor_id=actor_id,
            start=start,
            end=end,
            total_events=len(events),
            by_severity=dict(by_severity),
            by_event_type=dict(by_event_type),
            failed_operations=sum(1 for e in events if not e.success),
            security_events=len(security_incidents),
            top_events=by_event_type.most_common(TOP_EVENT_COUNT),
            security_incidents=security_incidents,
            truncated=len(events) >= REPORT_EVENT_LIMIT,
        )
        self._probe.report_generated(actor_id=actor_id, total_events=len(events))
        return report
