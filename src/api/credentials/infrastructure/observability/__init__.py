"""Domain probes for the credentials infrastructure layer."""

from credentials.infrastructure.observability.repository_probe import (
    APIKeyRepositoryProbe,
    DefaultAPIKeyRepositoryProbe,
)

__all__ = ["APIKeyRepositoryProbe", "DefaultAPIKeyRepositoryProbe"]
