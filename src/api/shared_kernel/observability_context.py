"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures request-scoped metadata that should be included with all
    instrumentation events so events can be correlated per request.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        owner_id: Identifier of the credential owner (if known).
        workspace_id: Workspace the operation is scoped to (if applicable).
        api_key_id: API key that authenticated the request (if applicable).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", owner_id="user-456")
        probe = DefaultAPIKeyServiceProbe().with_context(context)
    """

    request_id: str | None = None
    owner_id: str | None = None
    workspace_id: str | None = None
    api_key_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.owner_id is not None:
            result["owner_id"] = self.owner_id
        if self.workspace_id is not None:
            result["workspace_id"] = self.workspace_id
        if self.api_key_id is not None:
            result["api_key_id"] = self.api_key_id
        result.update(self.extra)
        return result

    def with_owner(self, owner_id: str, api_key_id: str | None = None) -> ObservationContext:
        """Create a new context once the caller has been identified."""
        return replace(self, owner_id=owner_id, api_key_id=api_key_id)

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
