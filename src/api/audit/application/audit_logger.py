"""Asynchronous, batched audit event logger.

Events are sanitized and queued at call time and written to the sink by a
background loop. The logger fails open: a broken sink never raises into
request handling. After a run of consecutive write failures it disables
itself and discards events until reset, reporting its state via health().
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any

from audit.application.observability import (
    AuditLoggerProbe,
    DefaultAuditLoggerProbe,
)
from audit.domain.value_objects import (
    SYSTEM_ACTOR,
    AuditEvent,
    AuditEventType,
    AuditSeverity,
)
from audit.ports.repositories import AuditSink


@dataclass(frozen=True)
class AuditLoggerHealth:
    """Point-in-time health of the audit logger."""

    enabled: bool
    running: bool
    queued: int
    consecutive_failures: int
    dropped: int
    last_error: str | None

    @property
    def status(self) -> str:
        if not self.enabled:
            return "disabled"
        if self.consecutive_failures:
            return "degraded"
        return "ok"


class AuditLogger:
    """Queue-backed audit writer with a periodic flush loop.

    Intended to be created once per process and injected wherever events
    are recorded. All methods must be called from the event loop that runs
    the flush task.
    """

    def __init__(
        self,
        sink: AuditSink,
        probe: AuditLoggerProbe | None = None,
        flush_interval_seconds: float = 5.0,
        batch_size: int = 500,
        max_queue_size: int = 10_000,
        failure_threshold: int = 3,
    ) -> None:
        """Initialize the logger.

        Args:
            sink: Destination for flushed batches
            probe: Optional domain probe for observability
            flush_interval_seconds: Delay between background flushes
            batch_size: Maximum events written per sink call
            max_queue_size: Queue bound; the oldest events are dropped beyond it
            failure_threshold: Consecutive failed flushes before disabling
        """
        self._sink = sink
        self._probe = probe or DefaultAuditLoggerProbe()
        self._flush_interval = flush_interval_seconds
        self._batch_size = batch_size
        self._failure_threshold = failure_threshold
        self._queue: deque[AuditEvent] = deque(maxlen=max_queue_size)
        self._flush_lock = asyncio.Lock()
        self._running = False
        self._task: asyncio.Task | None = None
        self._pending_flushes: set[asyncio.Task] = set()
        self._enabled = True
        self._consecutive_failures = 0
        self._dropped = 0
        self._last_error: str | None = None

    @property
    def queued(self) -> int:
        return len(self._queue)

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def start(self) -> None:
        """Start the periodic flush loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._flush_loop())
        self._probe.logger_started(self._flush_interval)

    async def stop(self) -> None:
        """Stop the loop and make a final flush attempt."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self.wait_idle()
        await self.flush()
        self._probe.logger_stopped(remaining=len(self._queue))

    async def wait_idle(self) -> None:
        """Wait for any immediate flushes scheduled by critical events."""
        if self._pending_flushes:
            await asyncio.gather(*self._pending_flushes, return_exceptions=True)

    def health(self) -> AuditLoggerHealth:
        """Return the current health snapshot."""
        return AuditLoggerHealth(
            enabled=self._enabled,
            running=self._running,
            queued=len(self._queue),
            consecutive_failures=self._consecutive_failures,
            dropped=self._dropped,
            last_error=self._last_error,
        )

    def reset(self) -> None:
        """Re-enable a logger that disabled itself."""
        self._enabled = True
        self._consecutive_failures = 0
        self._last_error = None
        self._probe.logger_reset()

    def log(
        self,
        event_type: AuditEventType,
        severity: AuditSeverity = AuditSeverity.INFO,
        actor_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        success: bool = True,
        resource_type: str | None = None,
        resource_id: str | None = None,
        workspace_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        request_id: str | None = None,
        error_message: str | None = None,
    ) -> AuditEvent | None:
        """Record an event. Never raises and never waits on the sink.

        Metadata is redacted before the event is queued. Critical events
        schedule an immediate flush.

        Returns:
            The queued event, or None if the logger is disabled
        """
        if not self._enabled:
            self._dropped += 1
            return None

        event = AuditEvent.create(
            event_type=event_type,
            severity=severity,
            actor_id=actor_id,
            metadata=metadata,
            success=success,
            resource_type=resource_type,
            resource_id=resource_id,
            workspace_id=workspace_id,
            ip_address=ip_address,
            user_agent=user_agent,
            request_id=request_id,
            error_message=error_message,
        )
        self._enqueue(event)

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._probe.high_severity_event(
                event_type=event.event_type.value,
                severity=event.severity.value,
                actor_id=event.actor_id,
            )
        if event.severity is AuditSeverity.CRITICAL:
            self._schedule_flush()

        return event

    def log_auth(
        self,
        actor_id: str | None,
        event_type: AuditEventType,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        success: bool = True,
    ) -> AuditEvent | None:
        """Record an authentication event; failures are warnings."""
        severity = (
            AuditSeverity.WARNING
            if event_type is AuditEventType.AUTH_FAILED or not success
            else AuditSeverity.INFO
        )
        return self.log(
            event_type=event_type,
            severity=severity,
            actor_id=actor_id,
            metadata=metadata,
            success=success,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def log_security_event(
        self,
        actor_id: str | None,
        event_type: AuditEventType,
        metadata: dict[str, Any] | None = None,
        severity: AuditSeverity = AuditSeverity.WARNING,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditEvent | None:
        """Record a security event (warning unless stated otherwise)."""
        return self.log(
            event_type=event_type,
            severity=severity,
            actor_id=actor_id,
            metadata=metadata,
            success=False,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def log_api_call(
        self,
        actor_id: str | None,
        endpoint: str,
        method: str,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditEvent | None:
        """Record an API call with its endpoint and method."""
        return self.log(
            event_type=AuditEventType.API_CALL,
            actor_id=actor_id,
            metadata={"endpoint": endpoint, "method": method, **(metadata or {})},
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def log_data_access(
        self,
        actor_id: str | None,
        data_type: str,
        purpose: str,
        export: bool = False,
    ) -> AuditEvent | None:
        """Record personal-data access or export for GDPR accountability."""
        return self.log(
            event_type=AuditEventType.DATA_EXPORT if export else AuditEventType.DATA_VIEW,
            actor_id=actor_id or SYSTEM_ACTOR,
            metadata={"data_type": data_type, "purpose": purpose, "gdpr_compliant": True},
        )

    async def flush(self) -> int:
        """Write queued events to the sink in batches.

        A failed batch is discarded, not re-queued. Stops at the first
        failure so one flush counts as one failure.

        Returns:
            Number of events written
        """
        async with self._flush_lock:
            if not self._enabled:
                self._discard_queue()
                return 0

            written = 0
            while self._queue:
                take = min(self._batch_size, len(self._queue))
                batch = [self._queue.popleft() for _ in range(take)]
                try:
                    await self._sink.write_batch(batch)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._record_failure(e, discarded=len(batch))
                    return written

                written += len(batch)
                self._consecutive_failures = 0
                self._last_error = None
                self._probe.batch_flushed(len(batch))
            return written

    def _enqueue(self, event: AuditEvent) -> None:
        if self._queue.maxlen is not None and len(self._queue) >= self._queue.maxlen:
            # deque(maxlen) drops the oldest entry on append
            self._dropped += 1
            if self._dropped == 1 or self._dropped % 1000 == 0:
                self._probe.queue_overflow(self._dropped)
        self._queue.append(event)

    def _discard_queue(self) -> None:
        self._dropped += len(self._queue)
        self._queue.clear()

    def _record_failure(self, error: Exception, discarded: int) -> None:
        self._consecutive_failures += 1
        self._dropped += discarded
        message = str(error) or error.__class__.__name__

        # Repeated identical errors are only reported once
        if message != self._last_error:
            self._probe.flush_failed(
                error=message,
                consecutive_failures=self._consecutive_failures,
                discarded=discarded,
            )
        self._last_error = message

        if self._consecutive_failures >= self._failure_threshold:
            self._enabled = False
            self._discard_queue()
            self._probe.logger_disabled(
                consecutive_failures=self._consecutive_failures,
                discarded=self._dropped,
            )

    def _schedule_flush(self) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self.flush())
        except RuntimeError:
            # No running loop; the periodic flush or stop() will pick it up
            return
        self._pending_flushes.add(task)
        task.add_done_callback(self._pending_flushes.discard)

    async def _flush_loop(self) -> None:
        """Flush every interval until stopped."""
        while self._running:
            await asyncio.sleep(self._flush_interval)
            await self.flush()
