"""Domain probes for the access infrastructure layer."""

from access.infrastructure.observability.repository_probe import (
    DefaultQuotaRepositoryProbe,
    QuotaRepositoryProbe,
)

__all__ = ["DefaultQuotaRepositoryProbe", "QuotaRepositoryProbe"]
