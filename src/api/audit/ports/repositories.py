"""Repository protocols (ports) for the audit bounded context."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from audit.domain.value_objects import AuditEvent, AuditPage, AuditQuery


@runtime_checkable
class AuditSink(Protocol):
    """Write side used by the background flusher.

    Implementations own their session lifecycle since they are called from
    a worker task rather than from a request.
    """

    async def write_batch(self, events: Sequence[AuditEvent]) -> None:
        """Persist a batch of events atomically.

        Raises:
            Exception: Any failure; the caller treats the batch as lost
        """
        ...


@runtime_checkable
class IAuditEventRepository(Protocol):
    """Read and write access to persisted audit events."""

    async def append_many(self, events: Sequence[AuditEvent]) -> None:
        """Insert events. Does not commit."""
        ...

    async def query(self, query: AuditQuery) -> AuditPage:
        """Return one page of events matching the filters, newest first."""
        ...

    async def list_between(
        self,
        actor_id: str,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[AuditEvent]:
        """Return up to ``limit`` events for one actor in a time range."""
        ...
